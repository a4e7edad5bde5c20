"""
Administrative hierarchy: Province > District > Constituency > Ward > Branch > Section.

The province/district table is static and only backs address capture and
dropdowns; member records store all six levels as free text. Admin visibility
is scoped by comparing the member field that matches the admin's level with
the admin's jurisdiction string.
"""
from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import false

from app.pmms.constants import (
    LEVEL_BRANCH,
    LEVEL_CONSTITUENCY,
    LEVEL_DISTRICT,
    LEVEL_NATIONAL,
    LEVEL_PROVINCIAL,
    LEVEL_SECTION,
    LEVEL_WARD,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Query
    from app.pmms.models import User

T = TypeVar("T")

JURISDICTION_FIELDS = ("province", "district", "constituency", "ward", "branch", "section")

PROVINCES = (
    "Central",
    "Copperbelt",
    "Eastern",
    "Luapula",
    "Lusaka",
    "Muchinga",
    "Northern",
    "North-Western",
    "Southern",
    "Western",
)

PROVINCIAL_DISTRICTS = MappingProxyType({
    "Central": (
        "Chibombo", "Chisamba", "Chitambo", "Kabwe", "Kapiri Mposhi",
        "Luano", "Mkushi", "Mumbwa", "Ngabwe", "Shibuyunji",
    ),
    "Copperbelt": (
        "Chililabombwe", "Chingola", "Kalulushi", "Kitwe", "Luanshya",
        "Lufwanyama", "Masaiti", "Mpongwe", "Mufulira", "Ndola",
    ),
    "Eastern": (
        "Chadiza", "Chapata", "Chipata", "Katete", "Lundazi",
        "Mambwe", "Nyimba", "Petauke", "Sinda", "Vubwi",
    ),
    "Luapula": (
        "Chiengi", "Chipili", "Kawambwa", "Lunga", "Mansa",
        "Milenge", "Mwansabombwe", "Mwense", "Nchelenge", "Samfya",
    ),
    "Lusaka": (
        "Chongwe", "Kafue", "Luangwa", "Lusaka", "Rufunsa",
    ),
    "Muchinga": (
        "Chama", "Chinsali", "Isoka", "Kanchibiya", "Mpika",
        "Nakonde", "Shiwang'andu",
    ),
    "Northern": (
        "Chilubi", "Kaputa", "Kasama", "Luwingu", "Mbala",
        "Mporokoso", "Mungwi", "Nsama", "Senga Hill",
    ),
    "North-Western": (
        "Chavuma", "Ikelenge", "Kabompo", "Kasempa", "Mufumbwe",
        "Mushindamo", "Mwinilunga", "Solwezi", "Zambezi",
    ),
    "Southern": (
        "Chikankata", "Chirundu", "Gwembe", "Itezhi-Tezhi", "Kalomo",
        "Kazungula", "Livingstone", "Mazabuka", "Monze", "Namwala",
        "Pemba", "Siavonga", "Sinazongwe", "Zimba",
    ),
    "Western": (
        "Kalabo", "Kaoma", "Limulunga", "Luampa", "Lukulu",
        "Mitete", "Mongu", "Mulobezi", "Mwandi", "Nalolo",
        "Nkeyema", "Senanga", "Sesheke", "Shangombo", "Sikongo",
    ),
})

# Which member field an admin's jurisdiction string is compared against.
LEVEL_MEMBER_FIELD = MappingProxyType({
    LEVEL_PROVINCIAL: "province",
    LEVEL_DISTRICT: "district",
    LEVEL_CONSTITUENCY: "constituency",
    LEVEL_WARD: "ward",
    LEVEL_BRANCH: "branch",
    LEVEL_SECTION: "section",
})


def districts_for(province: str | None) -> list[str]:
    return list(PROVINCIAL_DISTRICTS.get(province or "", ()))


def is_known_district(province: str | None, district: str | None) -> bool:
    return (district or "") in PROVINCIAL_DISTRICTS.get(province or "", ())


def member_field_for_level(level: str | None) -> str | None:
    """
    None means unrestricted (National). Raises KeyError for levels outside
    the hierarchy so callers fail closed.
    """
    if level == LEVEL_NATIONAL:
        return None
    return LEVEL_MEMBER_FIELD[level or ""]


def can_see(user: "User | None", member: Any) -> bool:
    if user is None or not user.is_active:
        return False
    try:
        field = member_field_for_level(user.level)
    except KeyError:
        return False
    if field is None:
        return True
    return getattr(member, field, None) == user.jurisdiction


def filter_visible(user: "User | None", members: Iterable[T]) -> list[T]:
    """Members the user may see, order preserved."""
    return [m for m in members if can_see(user, m)]


def scope_query(query: "Query", user: "User | None", *, member_entity: Any = None) -> "Query":
    """Apply the same visibility predicate as `can_see` to a SQL query over members."""
    if member_entity is None:
        from app.pmms.modules.members.models import Member

        member_entity = Member
    if user is None or not user.is_active:
        return query.filter(false())
    try:
        field = member_field_for_level(user.level)
    except KeyError:
        return query.filter(false())
    if field is None:
        return query
    return query.filter(getattr(member_entity, field) == user.jurisdiction)

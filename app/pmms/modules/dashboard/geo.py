"""Member locations for the map view. Pure functions over member snapshots."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from app.pmms.constants import STATUS_APPROVED, STATUS_EXPELLED, STATUS_REJECTED, STATUS_SUSPENDED

DEFAULT_MARKER_COLOR = "#6b7280"
MARKER_COLORS = {
    STATUS_APPROVED: "#16a34a",
    STATUS_REJECTED: "#dc2626",
    STATUS_SUSPENDED: "#7f1d1d",
    STATUS_EXPELLED: "#7f1d1d",
}
PENDING_MARKER_COLOR = "#eab308"


@dataclass(frozen=True)
class MapPoint:
    membership_id: str
    full_name: str
    province: str
    district: str
    constituency: str
    status: str
    latitude: float
    longitude: float
    color: str

    def to_dict(self) -> dict:
        return {
            "membership_id": self.membership_id,
            "full_name": self.full_name,
            "province": self.province,
            "district": self.district,
            "constituency": self.constituency,
            "status": self.status,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "color": self.color,
        }


@dataclass(frozen=True)
class ProvinceCluster:
    province: str
    count: int
    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {"province": self.province, "count": self.count, "latitude": self.latitude, "longitude": self.longitude}


def marker_color(status: str | None) -> str:
    if status and "Pending" in status:
        return PENDING_MARKER_COLOR
    return MARKER_COLORS.get(status or "", DEFAULT_MARKER_COLOR)


def has_coordinates(member: Any) -> bool:
    return member.latitude is not None and member.longitude is not None


def map_points(members: Iterable[Any]) -> list[MapPoint]:
    return [
        MapPoint(
            membership_id=m.membership_id,
            full_name=m.full_name,
            province=m.province,
            district=m.district,
            constituency=m.constituency,
            status=m.status,
            latitude=float(m.latitude),
            longitude=float(m.longitude),
            color=marker_color(m.status),
        )
        for m in members
        if has_coordinates(m)
    ]


def province_clusters(members: Iterable[Any]) -> list[ProvinceCluster]:
    """One cluster per province at the mean member position, largest first."""
    acc: dict[str, list[float]] = {}
    for m in members:
        if not has_coordinates(m):
            continue
        row = acc.setdefault(m.province, [0, 0.0, 0.0])
        row[0] += 1
        row[1] += float(m.latitude)
        row[2] += float(m.longitude)
    clusters = [
        ProvinceCluster(province=p, count=int(n), latitude=lat / n, longitude=lng / n)
        for p, (n, lat, lng) in acc.items()
    ]
    clusters.sort(key=lambda c: (-c.count, c.province))
    return clusters


def province_bounds(members: Iterable[Any], province: str, padding: float = 0.5) -> dict[str, float] | None:
    """Padded bounding box of a province's members; None when nobody there has coordinates."""
    pts = [(float(m.latitude), float(m.longitude)) for m in members if m.province == province and has_coordinates(m)]
    if not pts:
        return None
    lats = [p[0] for p in pts]
    lngs = [p[1] for p in pts]
    return {
        "south": min(lats) - padding,
        "west": min(lngs) - padding,
        "north": max(lats) + padding,
        "east": max(lngs) + padding,
    }

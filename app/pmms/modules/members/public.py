"""Unauthenticated endpoints: self-registration and the jurisdiction lookup."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from app.pmms.db import db_session
from app.pmms.errors import NotFoundError
from app.pmms.jurisdiction import PROVINCES, PROVINCIAL_DISTRICTS, districts_for
from app.pmms.modules.members.service import create_member
from app.pmms.utils import request_payload

bp = Blueprint("public", __name__)


@bp.post("/public/register")
def register():
    s = db_session()
    member = create_member(
        s,
        request_payload(),
        None,
        membership_id_prefix=current_app.config.get("MEMBERSHIP_ID_PREFIX") or "UPND",
        default_commitment=current_app.config.get("PARTY_COMMITMENT"),
    )
    s.commit()
    return jsonify({"membership_id": member.membership_id, "status": member.status}), 201


@bp.get("/jurisdictions/provinces")
def provinces():
    return jsonify({"provinces": list(PROVINCES)})


@bp.get("/jurisdictions/provinces/<province>/districts")
def districts(province: str):
    if province not in PROVINCIAL_DISTRICTS:
        raise NotFoundError("Province", province)
    return jsonify({"province": province, "districts": districts_for(province)})

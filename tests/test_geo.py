from types import SimpleNamespace

import pytest

from app.pmms.modules.dashboard.geo import map_points, marker_color, province_bounds, province_clusters


def _m(mid, province, lat, lng, status="Approved"):
    return SimpleNamespace(
        membership_id=mid,
        full_name=f"Member {mid}",
        province=province,
        district="D",
        constituency="C",
        status=status,
        latitude=lat,
        longitude=lng,
    )


MEMBERS = [
    _m("UPND1", "Lusaka", -15.4, 28.3),
    _m("UPND2", "Lusaka", -15.6, 28.5, status="Pending Ward Review"),
    _m("UPND3", "Copperbelt", -12.8, 28.2, status="Rejected"),
    _m("UPND4", "Southern", None, None),
]


def test_marker_colors():
    assert marker_color("Approved") == "#16a34a"
    assert marker_color("Pending Section Review") == "#eab308"
    assert marker_color("Rejected") == "#dc2626"
    assert marker_color(None) == "#6b7280"


def test_map_points_skip_missing_coordinates():
    points = map_points(MEMBERS)
    assert [p.membership_id for p in points] == ["UPND1", "UPND2", "UPND3"]
    assert points[1].color == "#eab308"


def test_province_clusters_centroid_and_order():
    clusters = province_clusters(MEMBERS)
    assert [c.province for c in clusters] == ["Lusaka", "Copperbelt"]
    assert clusters[0].count == 2
    assert clusters[0].latitude == pytest.approx(-15.5)
    assert clusters[0].longitude == pytest.approx(28.4)


def test_province_bounds():
    b = province_bounds(MEMBERS, "Lusaka")
    assert b == pytest.approx({"south": -16.1, "west": 27.8, "north": -14.9, "east": 29.0})
    assert province_bounds(MEMBERS, "Southern") is None

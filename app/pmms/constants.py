"""
Central constants for the membership system.

Statuses and roles are stored as their display strings; these tuples are the
closed sets the services validate against.
"""
from __future__ import annotations

# Member application lifecycle, in ladder order.
STATUS_PENDING_SECTION = "Pending Section Review"
STATUS_PENDING_BRANCH = "Pending Branch Review"
STATUS_PENDING_WARD = "Pending Ward Review"
STATUS_PENDING_DISTRICT = "Pending District Review"
STATUS_PENDING_PROVINCIAL = "Pending Provincial Review"
STATUS_APPROVED = "Approved"
STATUS_REJECTED = "Rejected"
STATUS_SUSPENDED = "Suspended"
STATUS_EXPELLED = "Expelled"

PENDING_STATUSES = (
    STATUS_PENDING_SECTION,
    STATUS_PENDING_BRANCH,
    STATUS_PENDING_WARD,
    STATUS_PENDING_DISTRICT,
    STATUS_PENDING_PROVINCIAL,
)
MEMBERSHIP_STATUSES = PENDING_STATUSES + (
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_SUSPENDED,
    STATUS_EXPELLED,
)
TERMINAL_STATUSES = frozenset({STATUS_APPROVED, STATUS_REJECTED, STATUS_EXPELLED})
INITIAL_STATUS = STATUS_PENDING_SECTION

# Admin roles and organisational levels.
ROLE_NATIONAL_ADMIN = "National Admin"
ROLE_PROVINCIAL_ADMIN = "Provincial Admin"
ROLE_DISTRICT_ADMIN = "District Admin"
ROLE_CONSTITUENCY_ADMIN = "Constituency Admin"
ROLE_WARD_ADMIN = "Ward Admin"
ROLE_BRANCH_ADMIN = "Branch Admin"
ROLE_SECTION_ADMIN = "Section Admin"
ROLE_MEMBER = "Member"

USER_ROLES = (
    ROLE_NATIONAL_ADMIN,
    ROLE_PROVINCIAL_ADMIN,
    ROLE_DISTRICT_ADMIN,
    ROLE_CONSTITUENCY_ADMIN,
    ROLE_WARD_ADMIN,
    ROLE_BRANCH_ADMIN,
    ROLE_SECTION_ADMIN,
    ROLE_MEMBER,
)

LEVEL_NATIONAL = "National"
LEVEL_PROVINCIAL = "Provincial"
LEVEL_DISTRICT = "District"
LEVEL_CONSTITUENCY = "Constituency"
LEVEL_WARD = "Ward"
LEVEL_BRANCH = "Branch"
LEVEL_SECTION = "Section"

ORGANIZATIONAL_LEVELS = (
    LEVEL_NATIONAL,
    LEVEL_PROVINCIAL,
    LEVEL_DISTRICT,
    LEVEL_CONSTITUENCY,
    LEVEL_WARD,
    LEVEL_BRANCH,
    LEVEL_SECTION,
)

# Default level for each admin role (used when seeding users).
ROLE_DEFAULT_LEVEL = {
    ROLE_NATIONAL_ADMIN: LEVEL_NATIONAL,
    ROLE_PROVINCIAL_ADMIN: LEVEL_PROVINCIAL,
    ROLE_DISTRICT_ADMIN: LEVEL_DISTRICT,
    ROLE_CONSTITUENCY_ADMIN: LEVEL_CONSTITUENCY,
    ROLE_WARD_ADMIN: LEVEL_WARD,
    ROLE_BRANCH_ADMIN: LEVEL_BRANCH,
    ROLE_SECTION_ADMIN: LEVEL_SECTION,
}

GENDERS = ("Male", "Female", "Other")
MEMBERSHIP_LEVELS = ("General", "Youth Wing", "Women's Wing", "Veterans")

CASE_SEVERITIES = ("Low", "Medium", "High")
CASE_STATUSES = ("Active", "Under Review", "Resolved", "Appealed")
EVIDENCE_TYPES = ("Document", "Photo", "Video", "Audio", "Witness Statement")
VIOLATION_TYPES = (
    "Misconduct",
    "Breach of Party Constitution",
    "Insubordination",
    "Corruption",
    "Misuse of Party Resources",
    "Bringing Party into Disrepute",
    "Failure to Follow Directives",
    "Unauthorized Representation",
    "Financial Irregularities",
    "Anti-Party Activities",
)

EVENT_STATUSES = ("Planned", "Active", "Completed", "Cancelled")
RSVP_RESPONSES = ("Going", "Maybe", "Not Going")

COMMUNICATION_TYPES = ("SMS", "Email", "Both")
COMMUNICATION_STATUSES = ("Draft", "Sending", "Sent", "Failed")
RECIPIENT_STATUSES = ("Pending", "Sent", "Delivered", "Failed")

CARD_TYPES = ("Standard", "Premium", "Executive")
CARD_STATUSES = ("Active", "Expired", "Revoked")

# Suggested event types; the column accepts free text.
EVENT_TYPES = (
    "Rally",
    "Meeting",
    "Training",
    "Conference",
    "Workshop",
    "Campaign",
    "Fundraiser",
    "Community Outreach",
    "Youth Event",
    "Women Event",
)

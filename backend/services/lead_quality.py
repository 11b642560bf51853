"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Lead quality rules                                              ║
║                                                                              ║
║  Flags (derived, never stored):                                              ║
║  - missing_contact    : no phone AND no email                                ║
║  - placeholder_emails : email domain in placeholder_domains                  ║
║  - test_data          : test marker as name, or email starting with "test"   ║
║  - short_phones       : 1 .. min_phone_digits-1 digits                       ║
║  - duplicate_phones   : phone already carried by another platform lead       ║
║  - missing_names      : REPORT ONLY, never removed                           ║
║                                                                              ║
║  A removed lead is counted under ONE reason: the first flag in               ║
║  REMOVAL_ORDER. Used by cleanup and bad-leads analytics, never by            ║
║  distribution.                                                               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from collections import defaultdict
from typing import Dict, List, Set, Optional

from config import normalize_phone
from models.lead import PoolState

REMOVAL_ORDER = [
    "missing_contact",
    "placeholder_emails",
    "test_data",
    "short_phones",
    "duplicate_phones",
]
REPORT_ONLY = ["missing_names"]

DEFAULT_NAMES = {"unknown", "driver"}


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def email_domain(email) -> str:
    email = _text(email).lower()
    if "@" not in email:
        return ""
    return email.rsplit("@", 1)[-1]


def is_missing_contact(lead: Dict) -> bool:
    return not normalize_phone(lead.get("phone")) and not _text(lead.get("email"))


def has_placeholder_email(lead: Dict, domains: List[str]) -> bool:
    domain = email_domain(lead.get("email"))
    return bool(domain) and domain in {d.lower() for d in domains}


def is_test_data(lead: Dict, markers: List[str]) -> bool:
    markers = {m.lower() for m in markers}
    for field in ("first_name", "last_name"):
        if _text(lead.get(field)).lower() in markers:
            return True
    local_part = _text(lead.get("email")).lower().split("@", 1)[0]
    return local_part.startswith("test")


def has_short_phone(lead: Dict, min_digits: int) -> bool:
    digits = normalize_phone(lead.get("phone"))
    return 0 < len(digits) < min_digits


def is_missing_names(lead: Dict) -> bool:
    first = _text(lead.get("first_name")).lower()
    last = _text(lead.get("last_name")).lower()
    return (not first or first in DEFAULT_NAMES) and (not last or last in DEFAULT_NAMES)


def _age_key(lead: Dict):
    # Missing created_at sorts as newest
    return (lead.get("created_at") or "\uffff", lead.get("id", ""))


def find_duplicate_phone_ids(leads: List[Dict]) -> Set[str]:
    """
    Unowned leads whose phone is already carried by another platform lead.

    Keeper per phone: every owned (locked/distributed) lead, otherwise the
    oldest unowned one. Only unowned non-keepers are returned.
    """
    by_phone = defaultdict(list)
    for lead in leads:
        phone = normalize_phone(lead.get("phone"))
        if phone:
            by_phone[phone].append(lead)

    duplicates = set()
    for group in by_phone.values():
        if len(group) < 2:
            continue
        unowned = sorted(
            (l for l in group if l.get("pool_state") == PoolState.UNOWNED.value),
            key=_age_key
        )
        has_owned = len(unowned) < len(group)
        extras = unowned if has_owned else unowned[1:]
        duplicates.update(l["id"] for l in extras)

    return duplicates


def classify_lead(lead: Dict, rules: Dict, duplicate_ids: Set[str]) -> List[str]:
    """All flags raised by a lead (removal flags first, in REMOVAL_ORDER)"""
    flags = []
    if is_missing_contact(lead):
        flags.append("missing_contact")
    if has_placeholder_email(lead, rules["placeholder_domains"]):
        flags.append("placeholder_emails")
    if is_test_data(lead, rules["test_markers"]):
        flags.append("test_data")
    if has_short_phone(lead, rules["min_phone_digits"]):
        flags.append("short_phones")
    if lead.get("id") in duplicate_ids:
        flags.append("duplicate_phones")
    if is_missing_names(lead):
        flags.append("missing_names")
    return flags


def primary_reason(flags: List[str]) -> Optional[str]:
    for reason in REMOVAL_ORDER:
        if reason in flags:
            return reason
    return None

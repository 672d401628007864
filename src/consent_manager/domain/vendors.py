"""Third-party vendors and their Data Processing Agreements (DPAs).

Risk levels:
- HIGH: KYC/payments vendors, vendors allowed Aadhaar or PAN, or any vendor
  whose DPA is not approved
- MEDIUM: vendors allowed contact data (name, email, phone, address)
- LOW: everything else

Access checks grant access only to an active vendor with an approved,
unexpired DPA, for an allowed purpose and allowed data types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable

VENDOR_CATEGORIES = ("analytics", "kyc", "messaging", "infra", "payments", "other")
DPA_STATUSES = ("PENDING", "APPROVED", "REJECTED", "EXPIRED")
DATA_TYPES = ("name", "email", "phone", "address", "aadhaar", "pan", "device_data")
VENDOR_PURPOSES = (
    "user_authentication",
    "kyc_verification",
    "fraud_detection",
    "analytics",
    "communication",
    "customer_support",
)

HIGH_RISK_CATEGORIES = frozenset({"kyc", "payments"})
HIGH_RISK_DATA_TYPES = frozenset({"aadhaar", "pan"})
CONTACT_DATA_TYPES = frozenset({"name", "email", "phone", "address"})

# Bulk approval signs the DPA today, valid for one year
DPA_DEFAULT_VALIDITY = timedelta(days=365)


def calculate_risk_level(
    *, category: str, allowed_data_types: Iterable[str], dpa_status: str
) -> str:
    data_types = set(allowed_data_types)
    if category in HIGH_RISK_CATEGORIES:
        return "HIGH"
    if data_types & HIGH_RISK_DATA_TYPES:
        return "HIGH"
    if dpa_status != "APPROVED":
        return "HIGH"
    if data_types & CONTACT_DATA_TYPES:
        return "MEDIUM"
    return "LOW"


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    reason: str


def check_vendor_access(
    vendor: dict[str, Any], *, purpose: str, data_types: Iterable[str], today: date
) -> AccessDecision:
    """Decide whether ``vendor`` may receive ``data_types`` for ``purpose``."""
    if not vendor["is_active"]:
        return AccessDecision(False, "Vendor is inactive")
    if vendor["dpa_status"] != "APPROVED":
        return AccessDecision(False, f"DPA status is {vendor['dpa_status']}")

    valid_till = vendor.get("dpa_valid_till")
    if valid_till is not None and valid_till < today:
        return AccessDecision(False, "DPA has expired")

    if purpose not in vendor["allowed_purposes"]:
        return AccessDecision(False, f"Purpose not allowed: {purpose}")

    denied = sorted(set(data_types) - set(vendor["allowed_data_types"]))
    if denied:
        return AccessDecision(False, f"Data types not allowed: {', '.join(denied)}")

    return AccessDecision(True, "Access granted")

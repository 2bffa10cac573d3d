"""
Record schemas for the rental bookkeeping engine.

Every record is a dataclass persisted as a flat-ish JSON object. Enum fields
are stored as their string value and accept loose strings on the way in.
``from_dict`` drops unknown keys so blobs written by other versions load.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Optional

from rentbook.utils import round_amount


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class _ChoiceEnum(str, Enum):
    """String enum with a forgiving parser."""

    @classmethod
    def from_string(cls, value: str):
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == normalized or member.name.lower() == normalized:
                return member
        raise ValueError(
            f"Unknown {cls.__name__}: {value!r}. "
            f"Valid: {', '.join(m.value for m in cls)}"
        )


class PropertyStatus(_ChoiceEnum):
    OCCUPIED = "occupied"
    VACANT = "vacant"


class BillingType(_ChoiceEnum):
    PREPAID = "prepaid"
    POSTPAID = "postpaid"


class RentTerms(_ChoiceEnum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class AgreementStatus(_ChoiceEnum):
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class InvoiceStatus(_ChoiceEnum):
    """Derived from payments and due date; never set by hand."""
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    OVERDUE = "overdue"


class PaymentMode(_ChoiceEnum):
    CASH = "cash"
    BANK = "bank"
    MOBILE_MONEY = "mobile_money"
    CHEQUE = "cheque"


class ExpenseCategory(_ChoiceEnum):
    REPAIRS = "repairs"
    CLEANING = "cleaning"
    UTILITIES = "utilities"
    ADMIN = "admin"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class MaintenanceType(_ChoiceEnum):
    REPAIRS = "repairs"
    PAINTING = "painting"
    CLEANING = "cleaning"
    INSPECTION = "inspection"
    OTHER = "other"


class MaintenanceStatus(_ChoiceEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _known(cls, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _coerce(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    return enum_cls.from_string(value)


def _nested(sub_cls, value):
    if value is None or isinstance(value, sub_cls):
        return value
    return sub_cls.from_dict(value)


class _Record:
    """to_dict / from_dict shared by all records and sub-records."""

    def to_dict(self) -> dict:
        return _plain(asdict(self))

    @classmethod
    def from_dict(cls, data: dict):
        return cls(**_known(cls, data))


# ---------------------------------------------------------------------------
# Sub-records
# ---------------------------------------------------------------------------

@dataclass
class Utilities(_Record):
    electricity_meter: str = ""
    water_account: str = ""
    billing_type: BillingType = BillingType.POSTPAID

    def __post_init__(self) -> None:
        self.billing_type = _coerce(BillingType, self.billing_type)


@dataclass
class NextOfKin(_Record):
    name: str = ""
    phone: str = ""
    relationship: str = ""


@dataclass
class EmergencyContact(_Record):
    name: str = ""
    phone: str = ""


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass
class Property(_Record):
    """A rentable unit. ``status`` is the only occupancy signal."""
    id: str = ""
    house_number: str = ""
    location: str = ""
    property_type: str = ""
    size: int = 0
    rent_rate: float = 0.0
    status: PropertyStatus = PropertyStatus.VACANT
    utilities: Optional[Utilities] = None
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        self.status = _coerce(PropertyStatus, self.status)
        self.utilities = _nested(Utilities, self.utilities)
        self.size = int(self.size)
        self.rent_rate = round_amount(self.rent_rate)

    @property
    def display_name(self) -> str:
        return f"{self.house_number} - {self.location}"


@dataclass
class Tenant(_Record):
    id: str = ""
    name: str = ""
    id_passport: str = ""
    phone: str = ""
    email: Optional[str] = None
    next_of_kin: NextOfKin = field(default_factory=NextOfKin)
    emergency_contact: EmergencyContact = field(default_factory=EmergencyContact)
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        self.next_of_kin = _nested(NextOfKin, self.next_of_kin) or NextOfKin()
        self.emergency_contact = (
            _nested(EmergencyContact, self.emergency_contact) or EmergencyContact()
        )


@dataclass
class TenancyAgreement(_Record):
    id: str = ""
    tenant_id: str = ""
    property_id: str = ""
    start_date: str = ""
    end_date: str = ""
    security_deposit: float = 0.0
    rent_amount: float = 0.0
    rent_terms: RentTerms = RentTerms.MONTHLY
    status: AgreementStatus = AgreementStatus.ACTIVE
    move_in_date: Optional[str] = None
    move_out_date: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        self.rent_terms = _coerce(RentTerms, self.rent_terms)
        self.status = _coerce(AgreementStatus, self.status)
        self.security_deposit = round_amount(self.security_deposit)
        self.rent_amount = round_amount(self.rent_amount)


@dataclass
class RentInvoice(_Record):
    """A rent bill for one month. ``total_amount`` is fixed at creation."""
    id: str = ""
    tenant_id: str = ""
    property_id: str = ""
    agreement_id: str = ""
    due_date: str = ""
    rent_amount: float = 0.0
    utilities_amount: Optional[float] = None
    total_amount: float = 0.0
    status: InvoiceStatus = InvoiceStatus.PENDING
    month: str = ""                          # YYYY-MM
    created_at: str = ""

    def __post_init__(self) -> None:
        self.status = _coerce(InvoiceStatus, self.status)
        self.rent_amount = round_amount(self.rent_amount)
        if self.utilities_amount is not None:
            self.utilities_amount = round_amount(self.utilities_amount)
        self.total_amount = round_amount(self.total_amount)


@dataclass
class Payment(_Record):
    id: str = ""
    invoice_id: str = ""
    tenant_id: str = ""
    property_id: str = ""
    amount: float = 0.0
    payment_date: str = ""
    payment_mode: PaymentMode = PaymentMode.CASH
    receipt_number: str = ""
    notes: Optional[str] = None
    created_at: str = ""

    def __post_init__(self) -> None:
        self.payment_mode = _coerce(PaymentMode, self.payment_mode)
        self.amount = round_amount(self.amount)


@dataclass
class Expense(_Record):
    """An outgoing cost. No ``property_id`` means a general expense."""
    id: str = ""
    property_id: Optional[str] = None
    date: str = ""
    description: str = ""
    amount: float = 0.0
    category: ExpenseCategory = ExpenseCategory.OTHER
    service_provider: Optional[str] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: str = ""

    def __post_init__(self) -> None:
        self.category = _coerce(ExpenseCategory, self.category)
        self.amount = round_amount(self.amount)


@dataclass
class MaintenanceRecord(_Record):
    id: str = ""
    property_id: str = ""
    date: str = ""
    description: str = ""
    cost: float = 0.0
    maintenance_type: MaintenanceType = MaintenanceType.OTHER
    service_provider: Optional[str] = None
    status: MaintenanceStatus = MaintenanceStatus.PENDING
    created_at: str = ""

    def __post_init__(self) -> None:
        self.maintenance_type = _coerce(MaintenanceType, self.maintenance_type)
        self.status = _coerce(MaintenanceStatus, self.status)
        self.cost = round_amount(self.cost)

    @property
    def derives_expense(self) -> bool:
        """Completed work with a cost is booked as a maintenance expense."""
        return self.status == MaintenanceStatus.COMPLETED and self.cost > 0


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass
class Snapshot:
    """A consistent read of every collection, fed to the aggregators."""
    properties: list[Property] = field(default_factory=list)
    tenants: list[Tenant] = field(default_factory=list)
    agreements: list[TenancyAgreement] = field(default_factory=list)
    invoices: list[RentInvoice] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    maintenance: list[MaintenanceRecord] = field(default_factory=list)

    def property_name(self, property_id: Optional[str], unknown: str = "Unknown Property") -> str:
        prop = next((p for p in self.properties if p.id == property_id), None)
        return prop.display_name if prop else unknown

    def tenant_name(self, tenant_id: Optional[str], unknown: str = "Unknown Tenant") -> str:
        tenant = next((t for t in self.tenants if t.id == tenant_id), None)
        return tenant.name if tenant else unknown

    def paid_on(self, invoice_id: str) -> float:
        return round_amount(sum(p.amount for p in self.payments if p.invoice_id == invoice_id))

    def outstanding(self, invoice: RentInvoice) -> float:
        """Amount still owed; negative when overpaid."""
        return round_amount(invoice.total_amount - self.paid_on(invoice.id))

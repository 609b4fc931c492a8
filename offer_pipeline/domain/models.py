"""Domain records consumed by the aggregation engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

from offer_pipeline.config import MAX_PERIOD_YEAR, MIN_PERIOD_YEAR
from offer_pipeline.domain.errors import ConfigurationError, InvalidPeriodError, InvalidRecordError


class Stage(str, Enum):
    INITIAL = "INITIAL"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    NEGOTIATION = "NEGOTIATION"
    FINAL_APPROVAL = "FINAL_APPROVAL"
    PO_RECEIVED = "PO_RECEIVED"
    ORDER_BOOKED = "ORDER_BOOKED"
    WON = "WON"
    LOST = "LOST"

    @classmethod
    def parse(cls, value: Any) -> "Stage":
        """Return the stage whose name equals ``value`` exactly (case-insensitive)."""
        if isinstance(value, cls):
            return value
        name = str(value or "").strip().upper()
        try:
            return cls[name]
        except KeyError:
            raise ConfigurationError(f"Unknown offer stage: {value!r}") from None


class StageBucket(str, Enum):
    WON = "WON"
    ACTIVE = "ACTIVE"
    LOST = "LOST"


class ValuePurpose(str, Enum):
    REALIZED = "REALIZED"
    EXPOSURE = "EXPOSURE"


class GroupBy(str, Enum):
    ZONE = "ZONE"
    USER = "USER"
    PRODUCT_TYPE = "PRODUCT_TYPE"


class PeriodType(str, Enum):
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class ScopeKind(str, Enum):
    ZONE = "ZONE"
    USER = "USER"


def _to_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _to_optional_decimal(value: Any, field: str) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidRecordError(f"{field} is not a number: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidRecordError(f"{field} is not a finite number: {value!r}")
    return amount


def _to_optional_int(value: Any, field: str) -> int | None:
    amount = _to_optional_decimal(value, field)
    if amount is None:
        return None
    if amount != amount.to_integral_value():
        raise InvalidRecordError(f"{field} is not an integer: {value!r}")
    return int(amount)


def _to_optional_datetime(value: Any, field: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidRecordError(f"{field} is not an ISO date: {value!r}") from exc


@dataclass(frozen=True)
class Offer:
    """Snapshot of a tracked sales opportunity."""

    reference_number: str
    stage: Stage
    created_at: datetime
    offer_value: Decimal | None = None
    po_value: Decimal | None = None
    probability_percentage: int | None = None
    po_expected_month: str | None = None
    po_date: datetime | None = None
    booking_date_in_sap: datetime | None = None
    offer_closed_in_crm: datetime | None = None
    zone_id: str | None = None
    assigned_to_id: str | None = None
    product_type: str | None = None
    customer_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "stage", Stage.parse(self.stage))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Offer":
        reference_number = _to_optional_str(row.get("referenceNumber"))
        if reference_number is None:
            raise InvalidRecordError("Offer record is missing referenceNumber")
        created_at = _to_optional_datetime(row.get("createdAt"), "createdAt")
        if created_at is None:
            raise InvalidRecordError(f"Offer {reference_number} is missing createdAt")
        probability = _to_optional_int(row.get("probabilityPercentage"), "probabilityPercentage")
        if probability is not None and not 0 <= probability <= 100:
            raise InvalidRecordError(f"Offer {reference_number} probability out of range: {probability}")
        return cls(
            reference_number=reference_number,
            stage=Stage.parse(row.get("stage")),
            created_at=created_at,
            offer_value=_to_optional_decimal(row.get("offerValue"), "offerValue"),
            po_value=_to_optional_decimal(row.get("poValue"), "poValue"),
            probability_percentage=probability,
            po_expected_month=_to_optional_str(row.get("poExpectedMonth")),
            po_date=_to_optional_datetime(row.get("poDate"), "poDate"),
            booking_date_in_sap=_to_optional_datetime(row.get("bookingDateInSap"), "bookingDateInSap"),
            offer_closed_in_crm=_to_optional_datetime(row.get("offerClosedInCrm"), "offerClosedInCrm"),
            zone_id=_to_optional_str(row.get("zoneId")),
            assigned_to_id=_to_optional_str(row.get("assignedToId")),
            product_type=_to_optional_str(row.get("productType")),
            customer_id=_to_optional_str(row.get("customerId")),
        )


@dataclass(frozen=True)
class ReportingPeriod:
    """Calendar month or year that won business is reported against."""

    period_type: PeriodType
    year: int
    month: int | None = None

    def __post_init__(self) -> None:
        if not MIN_PERIOD_YEAR <= self.year <= MAX_PERIOD_YEAR:
            raise InvalidPeriodError(f"Year out of range: {self.year}")
        if self.period_type is PeriodType.MONTHLY:
            if self.month is None or not 1 <= self.month <= 12:
                raise InvalidPeriodError(f"Monthly period needs a month in 1..12, got {self.month}")
        elif self.month is not None:
            raise InvalidPeriodError("Yearly period cannot carry a month")

    @classmethod
    def monthly(cls, year: int, month: int) -> "ReportingPeriod":
        return cls(PeriodType.MONTHLY, year, month)

    @classmethod
    def yearly(cls, year: int) -> "ReportingPeriod":
        return cls(PeriodType.YEARLY, year)

    @classmethod
    def parse(cls, text: str, period_type: PeriodType | str) -> "ReportingPeriod":
        """Parse ``YYYY-MM`` (MONTHLY) or ``YYYY`` (YEARLY)."""
        try:
            kind = period_type if isinstance(period_type, PeriodType) else PeriodType(str(period_type).strip().upper())
        except ValueError:
            raise InvalidPeriodError(f"Unknown period type: {period_type!r}") from None
        raw = str(text or "").strip()
        parts = raw.split("-")
        expected = 2 if kind is PeriodType.MONTHLY else 1
        if len(parts) != expected or not all(part.isdigit() for part in parts):
            layout = "YYYY-MM" if kind is PeriodType.MONTHLY else "YYYY"
            raise InvalidPeriodError(f"Invalid {kind.value.lower()} period format: {raw!r}. Expected {layout}")
        year = int(parts[0])
        if kind is PeriodType.MONTHLY:
            return cls.monthly(year, int(parts[1]))
        return cls.yearly(year)

    @property
    def label(self) -> str:
        if self.month is None:
            return f"{self.year:04d}"
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class AttributedPeriod:
    year: int
    month: int
    anchor: str

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class TargetScope:
    kind: ScopeKind
    scope_id: str


@dataclass(frozen=True)
class Target:
    """Administratively configured goal for one scope and period."""

    scope: TargetScope
    product_type: str | None
    target_period: str
    period_type: PeriodType
    target_value: Decimal
    target_offer_count: int

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Target":
        zone_id = _to_optional_str(row.get("serviceZoneId"))
        user_id = _to_optional_str(row.get("userId"))
        if (zone_id is None) == (user_id is None):
            raise InvalidRecordError("Target record needs exactly one of serviceZoneId or userId")
        if zone_id is not None:
            scope = TargetScope(ScopeKind.ZONE, zone_id)
        else:
            scope = TargetScope(ScopeKind.USER, str(user_id))

        period = ReportingPeriod.parse(str(row.get("targetPeriod") or ""), str(row.get("periodType") or ""))
        target_value = _to_optional_decimal(row.get("targetValue"), "targetValue")
        return cls(
            scope=scope,
            product_type=_to_optional_str(row.get("productType")),
            target_period=period.label,
            period_type=period.period_type,
            target_value=target_value if target_value is not None else Decimal("0"),
            target_offer_count=_to_optional_int(row.get("targetOfferCount"), "targetOfferCount") or 0,
        )

    @property
    def period(self) -> ReportingPeriod:
        return ReportingPeriod.parse(self.target_period, self.period_type)

    @property
    def upsert_key(self) -> tuple[TargetScope, str | None, str, PeriodType]:
        return (self.scope, self.product_type, self.target_period, self.period_type)


@dataclass(frozen=True)
class Actual:
    value: Decimal
    count: int

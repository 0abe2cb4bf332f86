"""
Pydantic models for tariff resolution and service costing.

Covers the contracted rate records read from the tariffe table, the
per-service cost request built by forms and the reconciliation view, and
the results handed back to them.

Database Reference: tariffe, servizi_richiesti, servizi_canone
"""

from enum import Enum
from datetime import date
from typing import List, Optional, Any
import json
import logging

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class UnitOfMeasure(str, Enum):
    """Billing unit a tariff is denominated in."""
    HOUR = "hour"
    INTERVENTION = "intervention"
    MONTH = "month"

    @classmethod
    def _missing_(cls, value: Any):
        # Stored rows use the Italian labels from the tariff form
        if isinstance(value, str):
            normalized = value.strip().lower()
            aliases = {
                "ora": cls.HOUR,
                "ore": cls.HOUR,
                "intervento": cls.INTERVENTION,
                "interventi": cls.INTERVENTION,
                "mese": cls.MONTH,
                "mesi": cls.MONTH,
            }
            if normalized in aliases:
                return aliases[normalized]
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class ServiceType(str, Enum):
    """Service categories that can be requested and priced."""
    PIANTONAMENTO = "Piantonamento"
    SERVIZI_FIDUCIARI = "Servizi Fiduciari"
    ISPEZIONI = "Ispezioni"
    BONIFICHE = "Bonifiche"
    GESTIONE_CHIAVI = "Gestione Chiavi"
    APERTURA_CHIUSURA = "Apertura/Chiusura"
    INTERVENTO = "Intervento"
    # Monthly-fee (canone) services
    DISPONIBILITA_PRONTO_INTERVENTO = "Disponibilità Pronto Intervento"
    VIDEOSORVEGLIANZA = "Videosorveglianza"
    IMPIANTO_ALLARME = "Impianto Allarme"
    BIDIREZIONALE = "Bidirezionale"
    MONODIREZIONALE = "Monodirezionale"
    TENUTA_CHIAVI = "Tenuta Chiavi"

    @property
    def default_unit(self) -> UnitOfMeasure:
        """Unit of measure a new tariff for this service is expected to use."""
        if self in (ServiceType.PIANTONAMENTO, ServiceType.SERVIZI_FIDUCIARI):
            return UnitOfMeasure.HOUR
        if self in (
            ServiceType.ISPEZIONI,
            ServiceType.BONIFICHE,
            ServiceType.GESTIONE_CHIAVI,
            ServiceType.APERTURA_CHIUSURA,
            ServiceType.INTERVENTO,
        ):
            return UnitOfMeasure.INTERVENTION
        return UnitOfMeasure.MONTH

    @classmethod
    def parse(cls, value: str) -> Optional["ServiceType"]:
        """Return the member for a raw type string, or None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


class DayCategory(str, Enum):
    """Locale-independent classification of a calendar day."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    HOLIDAY = "holiday"

    @classmethod
    def for_weekday(cls, weekday: int) -> "DayCategory":
        """Map date.weekday() (0 = Monday) to a category."""
        return _WEEKDAYS[weekday]

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["DayCategory"]:
        """
        Normalize a configured day label.

        Accepts English and Italian day names in any case, with or without
        accents, plus the holiday labels used by the service forms.
        """
        if not label:
            return None
        return _DAY_LABELS.get(label.strip().lower())


_WEEKDAYS = [
    DayCategory.MONDAY,
    DayCategory.TUESDAY,
    DayCategory.WEDNESDAY,
    DayCategory.THURSDAY,
    DayCategory.FRIDAY,
    DayCategory.SATURDAY,
    DayCategory.SUNDAY,
]

_DAY_LABELS = {
    "monday": DayCategory.MONDAY,
    "tuesday": DayCategory.TUESDAY,
    "wednesday": DayCategory.WEDNESDAY,
    "thursday": DayCategory.THURSDAY,
    "friday": DayCategory.FRIDAY,
    "saturday": DayCategory.SATURDAY,
    "sunday": DayCategory.SUNDAY,
    "holiday": DayCategory.HOLIDAY,
    "holidays": DayCategory.HOLIDAY,
    "lunedì": DayCategory.MONDAY,
    "lunedi": DayCategory.MONDAY,
    "martedì": DayCategory.TUESDAY,
    "martedi": DayCategory.TUESDAY,
    "mercoledì": DayCategory.WEDNESDAY,
    "mercoledi": DayCategory.WEDNESDAY,
    "giovedì": DayCategory.THURSDAY,
    "giovedi": DayCategory.THURSDAY,
    "venerdì": DayCategory.FRIDAY,
    "venerdi": DayCategory.FRIDAY,
    "sabato": DayCategory.SATURDAY,
    "domenica": DayCategory.SUNDAY,
    "festivo": DayCategory.HOLIDAY,
    "festivi": DayCategory.HOLIDAY,
    "festività": DayCategory.HOLIDAY,
}


_TRUE_LABELS = {"true", "1", "yes", "si", "sì"}


def _coerce_id(value: Any) -> Any:
    """UUID columns may come back as uuid.UUID; identifiers are compared as strings."""
    if value is None or isinstance(value, str):
        return value
    return str(value)


# =============================================================================
# INPUT MODELS
# =============================================================================

class DailyHoursEntry(BaseModel):
    """Operating window for one weekday (or for holidays)."""

    day_label: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("day_label", "dayLabel", "day"),
        description="Weekday name (English or Italian) or 'Holiday'",
    )
    is_24h: bool = Field(
        False,
        validation_alias=AliasChoices("is_24h", "is24h"),
        description="Open all day; overrides start/end times",
    )
    start_time: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("start_time", "startTime"),
        description="HH:MM",
    )
    end_time: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("end_time", "endTime"),
        description="HH:MM, earlier than start_time for overnight windows",
    )

    model_config = ConfigDict(populate_by_name=True)

    # Stored configs are free-form JSON; anything unusable becomes None and
    # the day then contributes no hours.
    @field_validator("day_label", "start_time", "end_time", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return None

    @field_validator("is_24h", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_LABELS
        if isinstance(value, (bool, int, float)):
            return bool(value)
        return False

    @property
    def category(self) -> Optional[DayCategory]:
        return DayCategory.from_label(self.day_label)


class Tariff(BaseModel):
    """
    Contracted rate record.

    service_point_id / supplier_id set to None widen the tariff to every
    service point of the client / every supplier. valid_to None is open ended.
    """

    id: str
    client_id: str
    service_type: str
    service_point_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("service_point_id", "punto_servizio_id"),
    )
    supplier_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("supplier_id", "fornitore_id"),
    )
    valid_from: date = Field(
        ...,
        validation_alias=AliasChoices("valid_from", "data_inizio_validita"),
    )
    valid_to: Optional[date] = Field(
        None,
        validation_alias=AliasChoices("valid_to", "data_fine_validita"),
    )
    client_rate: float = Field(..., ge=0)
    supplier_rate: float = Field(..., ge=0)
    unit_of_measure: UnitOfMeasure = Field(
        ...,
        validation_alias=AliasChoices("unit_of_measure", "unita_misura"),
    )
    notes: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("notes", "note"),
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id", "client_id", "service_point_id", "supplier_id", mode="before")
    @classmethod
    def coerce_ids(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("unit_of_measure", mode="before")
    @classmethod
    def parse_unit(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, UnitOfMeasure):
            return UnitOfMeasure(value)
        return value

    def is_valid_on(self, day: date) -> bool:
        """True if day falls inside [valid_from, valid_to], both inclusive."""
        if day < self.valid_from:
            return False
        return self.valid_to is None or day <= self.valid_to


class ServiceCostRequest(BaseModel):
    """
    One service instance to be costed.

    Built fresh by each caller; has no identity of its own.
    """

    type: str = Field(..., description="Service type, e.g. 'Piantonamento'")
    client_id: str
    service_point_id: Optional[str] = None
    supplier_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("supplier_id", "fornitore_id"),
    )
    start_date: date
    end_date: Optional[date] = Field(None, description="Inclusive; defaults to start_date")
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    num_agents: Optional[int] = Field(None, description="Absent or zero counts as one agent")
    cadence_hours: Optional[float] = Field(None, description="Hours between inspections")
    daily_hours_config: Optional[List[DailyHoursEntry]] = None
    inspection_type: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "type": "Piantonamento",
                "client_id": "c1",
                "service_point_id": "sp1",
                "start_date": "2024-01-01",
                "end_date": "2024-01-07",
                "num_agents": 2,
                "daily_hours_config": [
                    {"day": "Monday", "is24h": False, "startTime": "08:00", "endTime": "20:00"},
                    {"day": "Holiday", "is24h": True},
                ],
            }
        },
    )

    @field_validator("client_id", "service_point_id", "supplier_id", mode="before")
    @classmethod
    def coerce_ids(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("daily_hours_config", mode="before")
    @classmethod
    def drop_malformed_days(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning(f"Unreadable daily_hours_config {value!r}, ignoring it")
                return None
        if not isinstance(value, list):
            logger.warning(f"daily_hours_config is not a list ({type(value).__name__}), ignoring it")
            return None
        entries = []
        for entry in value:
            if isinstance(entry, (dict, DailyHoursEntry)):
                entries.append(entry)
            else:
                logger.warning(f"Ignoring daily_hours_config entry {entry!r}")
        return entries

    @model_validator(mode="after")
    def default_end_date(self) -> "ServiceCostRequest":
        if self.end_date is None:
            self.end_date = self.start_date
        return self

    @property
    def agents(self) -> int:
        return self.num_agents if self.num_agents else 1


class ServiceRecord(ServiceCostRequest):
    """A stored service (requested or monthly-fee) loaded for reconciliation."""

    id: str
    source: str = Field("richiesta", description="'richiesta' or 'canone'")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_record_id(cls, value: Any) -> Any:
        return _coerce_id(value)


# =============================================================================
# RESULT MODELS
# =============================================================================

class ServiceCostResult(BaseModel):
    """Billable multiplier plus the two rates it is multiplied by downstream."""

    multiplier: float
    client_rate: float
    supplier_rate: float
    unit_of_measure: UnitOfMeasure

    @computed_field
    @property
    def client_cost(self) -> float:
        return self.multiplier * self.client_rate

    @computed_field
    @property
    def supplier_cost(self) -> float:
        return self.multiplier * self.supplier_rate


class ServiceSummary(BaseModel):
    """Totals for one (service point, service type) pair."""

    service_point_id: str
    service_type: str
    total_services: int = 0
    total_units: float = 0.0
    total_client_cost: float = 0.0
    total_supplier_cost: float = 0.0
    cost_delta: float = 0.0


class MissingTariffEntry(BaseModel):
    """A stored service that could not be priced."""

    service_id: str
    service_type: str
    client_id: str
    service_point_id: Optional[str] = None
    supplier_id: Optional[str] = None
    start_date: date
    end_date: date
    reason: str


class ReconciliationReport(BaseModel):
    """Accounting analysis over a date range."""

    start_date: date
    end_date: date
    client_id: Optional[str] = None
    summary: List[ServiceSummary] = Field(default_factory=list)
    missing_tariffs: List[MissingTariffEntry] = Field(default_factory=list)

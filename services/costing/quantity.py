"""
Billable quantity (multiplier) calculation.

Each service type maps to one quantity rule:
- Hourly accrual (Piantonamento, Servizi Fiduciari): operational hours
  over the service period times the number of agents. Tariff unit: hour.
- Inspection counting (Ispezioni): one inspection at the start of the
  window plus one per full cadence interval. Tariff unit: intervention.
- Fixed per intervention (Bonifiche, Gestione Chiavi, Apertura/Chiusura,
  Intervento): always 1. Tariff unit: intervention.
Monthly-fee types and unknown types are not priced here.

Operational hours for a day come from the first daily_hours_config entry
whose category matches the day. Holidays are classified before weekdays,
so a holiday without a holiday entry contributes nothing.
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from math import floor
from typing import Dict, Iterator, List, Optional, Type
import logging
import re

from models.costing import (
    DailyHoursEntry,
    DayCategory,
    ServiceCostRequest,
    ServiceType,
    UnitOfMeasure,
)
from services.costing.config import CostingConfig
from services.costing.holidays import HolidayPredicate, ItalianHolidayCalendar

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24.0

# HH:MM, forms also let users type HH.MM
_TIME_PATTERN = re.compile(r"^\s*([01]?\d|2[0-3])[:.]([0-5]\d)(?::[0-5]\d)?\s*$")


def parse_time(value: Optional[str]) -> Optional[float]:
    """Hours since midnight for an HH:MM string, or None if missing/malformed."""
    if value is None:
        return None
    match = _TIME_PATTERN.match(str(value))
    if not match:
        return None
    return int(match.group(1)) + int(match.group(2)) / 60.0


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar date from start to end, both inclusive."""
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def classify_day(day: date, is_holiday: HolidayPredicate) -> DayCategory:
    if is_holiday(day):
        return DayCategory.HOLIDAY
    return DayCategory.for_weekday(day.weekday())


def entry_hours(entry: DailyHoursEntry) -> float:
    """
    Hours covered by one daily entry.

    is_24h wins over explicit times. An end time before the start time is an
    overnight window and wraps past midnight.
    """
    if entry.is_24h:
        return HOURS_PER_DAY

    if not entry.start_time or not entry.end_time:
        return 0.0

    start = parse_time(entry.start_time)
    end = parse_time(entry.end_time)
    if start is None or end is None:
        logger.warning(
            f"Invalid time window for '{entry.day_label}': "
            f"{entry.start_time!r}-{entry.end_time!r}, counting 0 hours"
        )
        return 0.0

    hours = end - start
    if hours < 0:
        hours += HOURS_PER_DAY
    return hours


def index_daily_config(
    config: Optional[List[DailyHoursEntry]]
) -> Dict[DayCategory, DailyHoursEntry]:
    """First entry per day category; unrecognized labels are logged and ignored."""
    indexed: Dict[DayCategory, DailyHoursEntry] = {}
    for entry in config or []:
        category = entry.category
        if category is None:
            logger.warning(f"Unrecognized day label in daily hours config: '{entry.day_label}'")
            continue
        indexed.setdefault(category, entry)
    return indexed


def operational_hours(
    start: date,
    end: date,
    config: Optional[List[DailyHoursEntry]],
    is_holiday: HolidayPredicate
) -> float:
    """Sum of configured operating hours for each day in [start, end]."""
    by_category = index_daily_config(config)
    total = 0.0
    for day in iter_days(start, end):
        entry = by_category.get(classify_day(day, is_holiday))
        if entry is not None:
            total += entry_hours(entry)
    return total


class BaseQuantityRule(ABC):
    """
    Quantity rule for one family of service types.

    Subclasses declare the tariff unit they are valid for and implement
    quantity(). A tariff in any other unit cannot price the service.
    """

    unit: UnitOfMeasure

    def __init__(self, is_holiday: HolidayPredicate):
        self.is_holiday = is_holiday

    def compute(
        self,
        request: ServiceCostRequest,
        unit_of_measure: UnitOfMeasure
    ) -> Optional[float]:
        if unit_of_measure != self.unit:
            logger.debug(
                f"{request.type}: tariff unit '{unit_of_measure.value}' "
                f"does not match required '{self.unit.value}'"
            )
            return None
        return self.quantity(request)

    @abstractmethod
    def quantity(self, request: ServiceCostRequest) -> Optional[float]:
        pass


class HourlyAccrualRule(BaseQuantityRule):
    unit = UnitOfMeasure.HOUR

    def quantity(self, request: ServiceCostRequest) -> Optional[float]:
        hours = operational_hours(
            request.start_date, request.end_date,
            request.daily_hours_config, self.is_holiday
        )
        return hours * request.agents


class InspectionCountRule(BaseQuantityRule):
    unit = UnitOfMeasure.INTERVENTION

    def quantity(self, request: ServiceCostRequest) -> Optional[float]:
        cadence = request.cadence_hours
        if cadence is None or cadence <= 0:
            logger.warning(
                f"Inspection request for client {request.client_id} has no valid "
                f"cadence ({cadence!r}), cannot count inspections"
            )
            return None

        hours = operational_hours(
            request.start_date, request.end_date,
            request.daily_hours_config, self.is_holiday
        )
        return float(floor(hours / cadence) + 1)


class FixedInterventionRule(BaseQuantityRule):
    unit = UnitOfMeasure.INTERVENTION

    def quantity(self, request: ServiceCostRequest) -> Optional[float]:
        return 1.0


# Every ServiceType has an entry; None means not priced by quantity.
QUANTITY_RULES: Dict[ServiceType, Optional[Type[BaseQuantityRule]]] = {
    ServiceType.PIANTONAMENTO: HourlyAccrualRule,
    ServiceType.SERVIZI_FIDUCIARI: HourlyAccrualRule,
    ServiceType.ISPEZIONI: InspectionCountRule,
    ServiceType.BONIFICHE: FixedInterventionRule,
    ServiceType.GESTIONE_CHIAVI: FixedInterventionRule,
    ServiceType.APERTURA_CHIUSURA: FixedInterventionRule,
    ServiceType.INTERVENTO: FixedInterventionRule,
    ServiceType.DISPONIBILITA_PRONTO_INTERVENTO: None,
    ServiceType.VIDEOSORVEGLIANZA: None,
    ServiceType.IMPIANTO_ALLARME: None,
    ServiceType.BIDIREZIONALE: None,
    ServiceType.MONODIREZIONALE: None,
    ServiceType.TENUTA_CHIAVI: None,
}


class QuantityCalculator:
    """
    Computes the billable multiplier for a request.

    Usage:
        calculator = QuantityCalculator()
        multiplier = calculator.compute(request, UnitOfMeasure.HOUR)
    """

    def __init__(self, is_holiday: Optional[HolidayPredicate] = None):
        if is_holiday is None:
            is_holiday = ItalianHolidayCalendar(CostingConfig.from_env().extra_holidays).is_holiday
        self.is_holiday = is_holiday
        self._rules: Dict[ServiceType, BaseQuantityRule] = {
            service_type: rule_class(self.is_holiday)
            for service_type, rule_class in QUANTITY_RULES.items()
            if rule_class is not None
        }

    def compute(
        self,
        request: ServiceCostRequest,
        unit_of_measure: UnitOfMeasure
    ) -> Optional[float]:
        """
        Args:
            request: Service to quantify
            unit_of_measure: Unit of the selected tariff

        Returns:
            Multiplier (hours, inspection count or 1), or None when the
            service type has no rule or the tariff unit does not fit it
        """
        service_type = ServiceType.parse(request.type)
        if service_type is None:
            logger.debug(f"Unknown service type '{request.type}', not priced")
            return None

        rule = self._rules.get(service_type)
        if rule is None:
            logger.debug(f"Service type '{request.type}' has no quantity rule")
            return None

        return rule.compute(request, UnitOfMeasure(unit_of_measure))

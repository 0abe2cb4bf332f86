"""
Repository for stored services used by the accounting reconciliation.

Two sources are combined:
- servizi_richiesti: one-off and recurring requested services
- servizi_canone: monthly-fee services (tipo_canone is their service type)
"""

from datetime import date
from typing import Optional, List, Dict, Any
import logging

from pydantic import ValidationError

from db.database import get_db_connection
from models.costing import ServiceRecord

logger = logging.getLogger(__name__)


def _coerce_date(value: Any, fallback: date) -> date:
    """Stored dates may be NULL or free text; unusable values fall back."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    return fallback


class ServiceRepository:
    """Database reads for servizi_richiesti and servizi_canone."""

    def fetch_requested_services(
        self,
        start_date: date,
        end_date: date,
        client_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Requested services starting inside [start_date, end_date]."""
        query = """
            SELECT id, type, client_id, service_point_id, fornitore_id,
                   start_date, end_date, start_time, end_time,
                   num_agents, cadence_hours, daily_hours_config, inspection_type
            FROM servizi_richiesti
            WHERE start_date >= %s AND start_date <= %s
        """
        params: List[Any] = [start_date, end_date]
        if client_id:
            query += " AND client_id = %s"
            params.append(client_id)
        query += " ORDER BY start_date, id"

        with get_db_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, tuple(params))
                return [dict(row) for row in cursor.fetchall()]

    def fetch_fee_services(
        self,
        start_date: date,
        end_date: date,
        client_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Monthly-fee services starting inside [start_date, end_date]."""
        query = """
            SELECT id, tipo_canone AS type, client_id, service_point_id,
                   fornitore_id, start_date, end_date
            FROM servizi_canone
            WHERE start_date >= %s AND start_date <= %s
        """
        params: List[Any] = [start_date, end_date]
        if client_id:
            query += " AND client_id = %s"
            params.append(client_id)
        query += " ORDER BY start_date, id"

        with get_db_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, tuple(params))
                return [dict(row) for row in cursor.fetchall()]

    def fetch_services(
        self,
        start_date: date,
        end_date: date,
        client_id: Optional[str] = None
    ) -> List[ServiceRecord]:
        """
        Load both service sources as ServiceRecord models.

        Args:
            start_date: First day of the analysis period (inclusive)
            end_date: Last day of the analysis period (inclusive)
            client_id: Optional client filter

        Returns:
            Requested services followed by monthly-fee services. Rows that
            cannot be turned into a cost request are logged and skipped.
        """
        rows = [
            (row, "richiesta")
            for row in self.fetch_requested_services(start_date, end_date, client_id)
        ] + [
            (row, "canone")
            for row in self.fetch_fee_services(start_date, end_date, client_id)
        ]

        services: List[ServiceRecord] = []
        today = date.today()
        for row, source in rows:
            row_start = _coerce_date(row.get("start_date"), today)
            row["start_date"] = row_start
            row["end_date"] = _coerce_date(row.get("end_date"), row_start)
            try:
                services.append(ServiceRecord.model_validate({**row, "source": source}))
            except ValidationError as e:
                logger.warning(
                    f"Skipping {source} service {row.get('id')}: "
                    f"{e.errors()[0].get('msg')}"
                )

        logger.info(
            f"Loaded {len(services)} services between {start_date} and {end_date}"
            + (f" for client {client_id}" if client_id else "")
        )
        return services

"""
Repository for contracted tariffs.

Reads the tariffe table in full. Rows are edited by the tariff admin
screens; this engine never writes them.
"""

from typing import List, Dict, Any
import logging

from pydantic import ValidationError

from db.database import get_db_connection
from models.costing import Tariff

logger = logging.getLogger(__name__)


class TariffRepository:
    """Database reads for the tariffe table."""

    def fetch_all_rows(self) -> List[Dict[str, Any]]:
        """
        Fetch every tariff row.

        Returns:
            List of row dicts with keys:
                - id, client_id, service_type, punto_servizio_id, fornitore_id
                - data_inizio_validita, data_fine_validita
                - client_rate, supplier_rate, unita_misura, note

        Raises:
            RuntimeError: If the connection pool is not initialized
            psycopg2.Error: If the query fails
        """
        query = """
            SELECT id, client_id, service_type, punto_servizio_id, fornitore_id,
                   data_inizio_validita, data_fine_validita,
                   client_rate, supplier_rate, unita_misura, note
            FROM tariffe
        """
        with get_db_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query)
                return [dict(row) for row in cursor.fetchall()]

    def fetch_all(self) -> List[Tariff]:
        """
        Fetch every tariff as a validated model.

        Rows that fail validation (missing client, unknown unit, negative
        rate, no start date) are skipped and logged; they can never match.
        """
        tariffs: List[Tariff] = []
        for row in self.fetch_all_rows():
            try:
                tariffs.append(Tariff.model_validate(row))
            except ValidationError as e:
                logger.warning(
                    f"Skipping tariff {row.get('id')}: invalid row "
                    f"({e.error_count()} errors): {e.errors()[0].get('msg')}"
                )
        logger.info(f"Loaded {len(tariffs)} tariffs")
        return tariffs

"""
Reconcile live database tables with the declared models.

Two modes:
- destructive: drop the model's table (if any) and recreate it empty.
  Refused for a table that still holds rows unless the caller confirms.
- additive (default): create the table and its indexes when missing,
  never touching existing data.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from user_records.core.exceptions import SchemaSyncError

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    table: str
    dropped: bool = False
    created: bool = False


class SchemaSynchronizer:
    def __init__(self, engine: Engine):
        self.engine = engine

    def table_exists(self, model) -> bool:
        return inspect(self.engine).has_table(model.__tablename__)

    def row_count(self, model) -> int:
        table = model.__table__
        with self.engine.connect() as connection:
            return connection.execute(select(func.count()).select_from(table)).scalar_one()

    def sync(self, model, destructive: bool = False, confirmed: bool = False) -> SyncResult:
        """
        Make the model's table match its declaration.

        With destructive=True every existing row is lost. A populated table is
        only dropped when confirmed=True; otherwise SchemaSyncError is raised
        and nothing is changed.
        """
        table = model.__table__
        result = SyncResult(table=table.name)

        try:
            exists = self.table_exists(model)

            if destructive and exists:
                rows = self.row_count(model)
                if rows and not confirmed:
                    raise SchemaSyncError(
                        f"Refusing to drop table '{table.name}' holding {rows} row(s) "
                        "without confirmation"
                    )
                table.drop(bind=self.engine)
                result.dropped = True
                logger.warning(f"Dropped table '{table.name}' ({rows} row(s) discarded)")
                exists = False

            if not exists:
                # create() also emits the table's indexes
                table.create(bind=self.engine)
                result.created = True
                logger.info(f"Created table '{table.name}'")
            else:
                # The table is there already; add any index that is missing
                existing_indexes = {ix["name"] for ix in inspect(self.engine).get_indexes(table.name)}
                for index in table.indexes:
                    if index.name not in existing_indexes:
                        index.create(bind=self.engine)
                        logger.info(f"Created missing index '{index.name}' on '{table.name}'")
        except SQLAlchemyError as e:
            raise SchemaSyncError(f"Failed to sync table '{table.name}': {str(e)}") from e

        return result

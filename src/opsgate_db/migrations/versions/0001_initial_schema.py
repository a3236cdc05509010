"""Initial opsgate schema.

Notes:
- UUID primary keys are native on Postgres and CHAR(36) elsewhere.
- Enums use VARCHAR + CHECK constraints (native_enum=False).
- Access-point actions and context are stored as JSONB on Postgres.
"""

from __future__ import annotations

from typing import Optional

from alembic import op

from opsgate_db.base import Base

# Revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision: Optional[str] = None
branch_labels: Optional[str] = None
depends_on: Optional[str] = None

TABLES = ("accounts", "dashboard_access", "dashboard_access_points")


def upgrade() -> None:
    # Import models so Base.metadata is populated.
    import opsgate_db.models  # noqa: F401

    bind = op.get_bind()
    tables = [Base.metadata.tables[name] for name in TABLES]
    Base.metadata.create_all(bind=bind, tables=tables)


def downgrade() -> None:  # pragma: no cover
    raise NotImplementedError("Downgrades are not supported.")

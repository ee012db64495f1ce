"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from ratedeck.db.models.az_destination import AzDestinationRow
from ratedeck.db.models.job import JobRow

__all__ = ["AzDestinationRow", "JobRow"]

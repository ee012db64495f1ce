"""A-Z destination repository."""

from dataclasses import dataclass

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ratedeck.db.models.az_destination import AzDestinationRow
from ratedeck.repositories.base import BaseRepository
from ratedeck.services.id_generator import generate_id

# Codes looked up per IN (...) query during bulk upserts
_LOOKUP_BATCH = 500


@dataclass
class UpsertResult:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0

    def __iadd__(self, other: "UpsertResult") -> "UpsertResult":
        self.inserted += other.inserted
        self.updated += other.updated
        self.skipped += other.skipped
        return self


class AzDestinationRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, AzDestinationRow)

    async def get(self, destination_id: str) -> AzDestinationRow | None:
        return await self.get_by_id("id", destination_id)

    async def get_by_code(self, code: str) -> AzDestinationRow | None:
        return await self.get_by_id("code", code)

    async def list_destinations(
        self,
        search: str | None = None,
        region: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AzDestinationRow], int]:
        """Search by code prefix or destination substring, ordered by code."""
        conditions = []
        if search:
            conditions.append(
                or_(
                    AzDestinationRow.code.ilike(f"{search}%"),
                    AzDestinationRow.destination.ilike(f"%{search}%"),
                )
            )
        if region:
            conditions.append(AzDestinationRow.region == region)

        stmt = (
            select(AzDestinationRow)
            .where(*conditions)
            .order_by(AzDestinationRow.code)
            .limit(limit)
            .offset(offset)
        )
        count_stmt = select(func.count()).select_from(AzDestinationRow).where(*conditions)

        rows = list((await self.session.execute(stmt)).scalars().all())
        total = (await self.session.execute(count_stmt)).scalar_one()
        return rows, total

    async def list_all(self) -> list[AzDestinationRow]:
        stmt = select(AzDestinationRow).order_by(AzDestinationRow.code)
        return list((await self.session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        stmt = select(func.count()).select_from(AzDestinationRow)
        return (await self.session.execute(stmt)).scalar_one()

    async def create_destination(
        self,
        code: str,
        destination: str,
        region: str | None = None,
        billing_increment: str = "60/60",
        grace_period: int = 0,
        is_active: bool = True,
    ) -> AzDestinationRow:
        return await self.create(
            id=generate_id("azd_"),
            code=code,
            destination=destination,
            region=region,
            billing_increment=billing_increment,
            grace_period=grace_period,
            is_active=is_active,
        )

    async def delete_all(self) -> int:
        result = await self.session.execute(
            delete(AzDestinationRow).execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def regions(self) -> list[str]:
        stmt = (
            select(AzDestinationRow.region)
            .where(AzDestinationRow.region.is_not(None))
            .distinct()
            .order_by(AzDestinationRow.region)
        )
        return [r for r in (await self.session.execute(stmt)).scalars().all() if r]

    async def normalize_code(self, dial_code: str) -> AzDestinationRow | None:
        """Return the destination with the longest code that prefixes dial_code."""
        dial_code = dial_code.strip()
        prefixes = [dial_code[:i] for i in range(len(dial_code), 0, -1)]
        if not prefixes:
            return None
        stmt = (
            select(AzDestinationRow)
            .where(AzDestinationRow.code.in_(prefixes))
            .order_by(func.length(AzDestinationRow.code).desc())
            .limit(1)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def upsert_bulk(self, destinations: list[dict]) -> UpsertResult:
        """Insert new codes and update changed ones; unchanged rows are skipped.

        Each dict carries code, destination, region and billing_increment.
        Later entries win when a code repeats.
        """
        result = UpsertResult()
        for start in range(0, len(destinations), _LOOKUP_BATCH):
            result += await self._upsert_batch(destinations[start:start + _LOOKUP_BATCH])
        await self.session.flush()
        return result

    async def _upsert_batch(self, batch: list[dict]) -> UpsertResult:
        result = UpsertResult()
        codes = {d["code"] for d in batch}
        stmt = select(AzDestinationRow).where(AzDestinationRow.code.in_(codes))
        existing = {row.code: row for row in (await self.session.execute(stmt)).scalars().all()}

        for dest in batch:
            fields = {
                "destination": dest["destination"],
                "region": dest.get("region") or None,
                "billing_increment": dest.get("billing_increment") or "60/60",
            }
            row = existing.get(dest["code"])
            if row is None:
                row = AzDestinationRow(id=generate_id("azd_"), code=dest["code"], **fields)
                self.session.add(row)
                existing[row.code] = row
                result.inserted += 1
            elif all(getattr(row, key) == value for key, value in fields.items()):
                result.skipped += 1
            else:
                for key, value in fields.items():
                    setattr(row, key, value)
                result.updated += 1
        return result

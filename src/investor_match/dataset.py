"""Investment dataset — SQLAlchemy tables and the read-only query surface.

The dataset is owned by whoever seeds it; the matching pipeline only reads.
``InvestmentDataset`` is the explicit context object handed to every
component.  Each call opens its own short-lived session, so one dataset can
serve concurrent requests.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterable

from sqlalchemy import Column, ForeignKey, Integer, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from src.investor_match.config import settings
from src.investor_match.errors import DatasetUnavailable
from src.investor_match.models import DatasetField, InvestmentHit, InvestorProfile

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent.parent / "data"

Base = declarative_base()


class Investor(Base):
    __tablename__ = "investors"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    investor_type = Column(String(100))  # VC, PE, Family Office, Corporate, Angel network
    website = Column(String(500))
    linkedin_url = Column(String(500))
    headquarters_country = Column(String(100))
    description = Column(Text)


class Investment(Base):
    """Aggregated investment events, one row per investor/sector/stage/country."""

    __tablename__ = "investments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    investor_id = Column(String(64), ForeignKey("investors.id"), nullable=False, index=True)
    investment_sector = Column(String(100), nullable=False, index=True)
    investment_stage = Column(String(50), nullable=False, index=True)
    investment_country = Column(String(100), nullable=False, index=True)
    investments = Column(Integer, nullable=False, default=0)


_FIELD_COLUMNS = {
    "sector": Investment.investment_sector,
    "stage": Investment.investment_stage,
    "country": Investment.investment_country,
}


def _to_profile(row: Investor) -> InvestorProfile:
    return InvestorProfile(
        id=row.id,
        name=row.name,
        investor_type=row.investor_type,
        website=row.website,
        linkedin_url=row.linkedin_url,
        headquarters_country=row.headquarters_country,
        description=row.description,
    )


class InvestmentDataset:
    """Read-only access to the ``investments`` and ``investors`` tables."""

    def __init__(self, engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @classmethod
    def from_url(cls, url: str | None = None, echo: bool | None = None) -> InvestmentDataset:
        url = url or settings.database_url
        kwargs: dict = {"echo": settings.database_echo if echo is None else echo}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
            kwargs["pool_recycle"] = 3600
        return cls(create_engine(url, **kwargs))

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        db = self._sessions()
        try:
            yield db
        except SQLAlchemyError as exc:
            raise DatasetUnavailable(f"Investment dataset query failed: {exc}") from exc
        finally:
            db.close()

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # -- vocabulary source --------------------------------------------------

    def distinct_values(self, field: DatasetField) -> list[str]:
        """Distinct non-empty values of one investment field, sorted."""
        column = _FIELD_COLUMNS.get(field)
        if column is None:
            raise ValueError(f"Unknown dataset field: {field!r}")
        with self.session() as db:
            rows = db.query(column).distinct().all()
        return sorted({r[0] for r in rows if r[0]})

    # -- investment query backend --------------------------------------------

    def find(self, sector: str, stage: str, country: str) -> list[InvestmentHit]:
        """Exact-match rows for one (sector, stage, country) combination."""
        with self.session() as db:
            rows = (
                db.query(Investment.investor_id, Investment.investments)
                .filter(
                    Investment.investment_sector == sector,
                    Investment.investment_stage == stage,
                    Investment.investment_country == country,
                )
                .order_by(Investment.id)
                .all()
            )
        return [InvestmentHit(investor_id=r[0], investments=r[1] or 0) for r in rows]

    # -- investor lookup backend ---------------------------------------------

    def find_by_ids(self, ids: Iterable[str]) -> list[InvestorProfile]:
        wanted = list(ids)
        if not wanted:
            return []
        with self.session() as db:
            rows = db.query(Investor).filter(Investor.id.in_(wanted)).all()
            return [_to_profile(r) for r in rows]

    # -- seeding -----------------------------------------------------------

    def load_records(
        self,
        investors: list[dict],
        investments: list[dict],
    ) -> tuple[int, int]:
        """Insert investor and investment rows.  Returns the counts inserted."""
        with self.session() as db:
            try:
                db.add_all(Investor(**inv) for inv in investors)
                db.flush()
                db.add_all(Investment(**row) for row in investments)
                db.commit()
            except Exception:
                db.rollback()
                raise
        logger.info(
            "Loaded %d investors and %d investment rows", len(investors), len(investments),
        )
        return len(investors), len(investments)


@contextmanager
def open_dataset(url: str | None = None) -> Generator[InvestmentDataset, None, None]:
    """Scoped dataset acquisition; the engine's pool is released on exit."""
    dataset = InvestmentDataset.from_url(url)
    try:
        yield dataset
    finally:
        dataset.dispose()


def load_sample_dataset(dataset: InvestmentDataset) -> tuple[int, int]:
    with open(DATA_DIR / "sample_investors.json") as f:
        investors = json.load(f)
    with open(DATA_DIR / "sample_investments.json") as f:
        investments = json.load(f)
    dataset.create_tables()
    return dataset.load_records(investors, investments)

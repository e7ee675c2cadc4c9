"""Tests for MetricsBackfillEngine: daily forward-fill against price history."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from goldfolio.db.repos.portfolio_metric_repo import PortfolioMetricRepo
from goldfolio.db.repos.price_history_repo import PriceHistoryRepo
from goldfolio.db.repos.purchase_repo import PurchaseRepo
from goldfolio.domain.day_window import market_timezone
from goldfolio.domain.enums import PriceSource
from goldfolio.domain.errors import PersistenceFailure
from goldfolio.metrics.backfill import MetricsBackfillEngine, PriceTimeline, build_snapshots

IST = market_timezone(330)
TODAY = date(2025, 7, 16)


def _engine(session) -> MetricsBackfillEngine:
    return MetricsBackfillEngine(session, tz=IST, fallback_price_24k=Decimal("7200"))


async def _seed_prices(session):
    repo = PriceHistoryRepo(session)
    await repo.insert(Decimal("8662"), Decimal("7940"), datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc), PriceSource.MANUAL)
    await repo.insert(Decimal("9988"), Decimal("9155"), datetime(2025, 7, 14, 8, 30, tzinfo=timezone.utc), PriceSource.SCHEDULED_API)


async def _seed_purchases(session, user_id):
    repo = PurchaseRepo(session)
    await repo.create(user_id, Decimal("10"), date(2025, 7, 13), Decimal("9000"))
    await repo.create(user_id, Decimal("8"), date(2025, 7, 15), Decimal("9100"), carat=22)


class TestPriceTimeline:
    def test_as_of_end_of_local_day(self):
        timeline = PriceTimeline(
            [
                SimpleNamespace(observed_at=datetime(2025, 7, 14, 8, 30, tzinfo=timezone.utc), price_per_gram_24k=Decimal("9988")),
                # 00:10 IST on the 15th
                SimpleNamespace(observed_at=datetime(2025, 7, 14, 18, 40, tzinfo=timezone.utc), price_per_gram_24k=Decimal("10100")),
                SimpleNamespace(observed_at=datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc), price_per_gram_24k=Decimal("8662")),
            ],
            IST,
        )

        assert timeline.as_of(date(2025, 2, 28)) is None
        assert timeline.as_of(date(2025, 3, 1)) == Decimal("8662")
        assert timeline.as_of(date(2025, 7, 13)) == Decimal("8662")
        assert timeline.as_of(date(2025, 7, 14)) == Decimal("9988")
        assert timeline.as_of(date(2025, 7, 15)) == Decimal("10100")


class TestBuildSnapshots:
    def test_empty(self):
        assert build_snapshots([], PriceTimeline([], IST), TODAY, Decimal("7200")) == ([], 0)

    def test_future_purchase_contributes_nothing(self):
        purchase = SimpleNamespace(
            weight_grams=Decimal("1"), total_amount=Decimal("9000"), carat=24, purchase_date=date(2025, 8, 1)
        )
        snapshots, _ = build_snapshots([purchase], PriceTimeline([], IST), TODAY, Decimal("7200"))
        assert snapshots == []


class TestMetricsBackfillEngine:
    async def test_forward_fills_each_day(self, session, user_id):
        await _seed_prices(session)
        await _seed_purchases(session, user_id)

        result = await _engine(session).run(user_id, today=TODAY)

        assert result.days == 4
        assert result.first_date == date(2025, 7, 13)
        assert result.last_date == TODAY
        assert result.fallback_days == 0

        rows = await PortfolioMetricRepo(session).get_series(user_id)
        assert [r.date for r in rows] == [date(2025, 7, 13), date(2025, 7, 14), date(2025, 7, 15), date(2025, 7, 16)]
        assert [r.current_value for r in rows] == [
            Decimal("86620.00"),
            Decimal("99880.00"),
            Decimal("173125.33"),
            Decimal("173125.33"),
        ]
        assert [r.investment for r in rows] == [
            Decimal("90000.00"),
            Decimal("90000.00"),
            Decimal("162800.00"),
            Decimal("162800.00"),
        ]
        assert rows[-1].total_weight_grams == Decimal("18.000")

    async def test_fallback_before_first_observation(self, session, user_id):
        await PurchaseRepo(session).create(user_id, Decimal("2"), date(2025, 2, 27), Decimal("8000"))

        result = await _engine(session).run(user_id, today=date(2025, 3, 1))

        assert result.days == 3
        assert result.fallback_days == 3
        rows = await PortfolioMetricRepo(session).get_series(user_id)
        assert all(r.current_value == Decimal("14400.00") for r in rows)

    async def test_rerun_is_idempotent(self, session, user_id):
        await _seed_prices(session)
        await _seed_purchases(session, user_id)
        engine = _engine(session)

        await engine.run(user_id, today=TODAY)
        first = [(r.date, r.investment, r.current_value) for r in await PortfolioMetricRepo(session).get_series(user_id)]
        await engine.run(user_id, today=TODAY)
        second = [(r.date, r.investment, r.current_value) for r in await PortfolioMetricRepo(session).get_series(user_id)]

        assert first == second
        assert len(second) == 4

    async def test_series_reflects_deleted_purchase(self, session, user_id):
        await _seed_prices(session)
        await _seed_purchases(session, user_id)
        engine = _engine(session)
        await engine.run(user_id, today=TODAY)

        repo = PurchaseRepo(session)
        later = (await repo.get_all(user_id))[-1]
        await repo.delete(user_id, later.id)
        await engine.run(user_id, today=TODAY)

        rows = await PortfolioMetricRepo(session).get_series(user_id)
        assert rows[-1].investment == Decimal("90000.00")

    async def test_no_purchases_is_noop(self, session, user_id):
        result = await _engine(session).run(user_id, today=TODAY)

        assert result.days == 0
        assert result.first_date is None
        assert await PortfolioMetricRepo(session).get_series(user_id) == []

    async def test_other_users_untouched(self, session, user_id):
        other = uuid.uuid4()
        await _seed_prices(session)
        await _seed_purchases(session, user_id)
        await PurchaseRepo(session).create(other, Decimal("1"), date(2025, 7, 16), Decimal("9988"))
        engine = _engine(session)
        await engine.run(other, today=TODAY)

        await engine.run(user_id, today=TODAY)

        assert len(await PortfolioMetricRepo(session).get_series(other)) == 1

    async def test_insert_failure_after_delete_keeps_previous_series(self, session, user_id):
        await _seed_prices(session)
        await _seed_purchases(session, user_id)
        engine = _engine(session)
        await engine.run(user_id, today=TODAY)
        before = [(r.date, r.current_value) for r in await PortfolioMetricRepo(session).get_series(user_id)]

        # Dropping the 07-13 purchase leaves 07-13 and 07-14 to be deleted
        repo = PurchaseRepo(session)
        await repo.delete(user_id, (await repo.get_all(user_id))[0].id)
        await session.commit()

        seen_in_transaction = []

        async def failing_flush(*args, **kwargs):
            with session.no_autoflush:
                rows = await PortfolioMetricRepo(session).get_series(user_id)
            seen_in_transaction.extend(r.date for r in rows)
            raise OperationalError("INSERT", {}, Exception("disk full"))

        with patch.object(session, "flush", failing_flush):
            with pytest.raises(PersistenceFailure):
                await engine.run(user_id, today=TODAY)

        assert seen_in_transaction == [date(2025, 7, 15), date(2025, 7, 16)]
        after = [(r.date, r.current_value) for r in await PortfolioMetricRepo(session).get_series(user_id)]
        assert after == before

    async def test_failure_mid_flush_rolls_back_updates(self, session, user_id):
        await _seed_prices(session)
        await _seed_purchases(session, user_id)
        engine = _engine(session)
        await engine.run(user_id, today=TODAY)

        def conflicting_snapshots(purchases, timeline, today, fallback):
            snapshots, fallback_days = build_snapshots(purchases, timeline, today, fallback)
            changed = [s.model_copy(update={"current_value": Decimal("1.00")}) for s in snapshots[1:]]
            extra = snapshots[-1].model_copy(update={"day": date(2025, 7, 17)})
            # Same new day twice violates (user_id, date) after the updates are sent
            return changed + [extra, extra], fallback_days

        with patch("goldfolio.metrics.backfill.build_snapshots", conflicting_snapshots):
            with pytest.raises(PersistenceFailure):
                await engine.run(user_id, today=TODAY)

        rows = await PortfolioMetricRepo(session).get_series(user_id)
        assert [r.date for r in rows] == [date(2025, 7, 13), date(2025, 7, 14), date(2025, 7, 15), TODAY]
        assert [r.current_value for r in rows] == [
            Decimal("86620.00"),
            Decimal("99880.00"),
            Decimal("173125.33"),
            Decimal("173125.33"),
        ]

    async def test_rerun_keeps_row_identity(self, session, user_id):
        await _seed_prices(session)
        await _seed_purchases(session, user_id)
        engine = _engine(session)
        metrics = PortfolioMetricRepo(session)

        await engine.run(user_id, today=TODAY)
        first = [(r.id, r.created_at) for r in await metrics.get_series(user_id)]
        session.expunge_all()
        await engine.run(user_id, today=TODAY)
        session.expunge_all()
        second = [(r.id, r.created_at) for r in await metrics.get_series(user_id)]

        assert first == second

    async def test_rerun_updates_changed_days_in_place(self, session, user_id):
        await _seed_prices(session)
        await _seed_purchases(session, user_id)
        engine = _engine(session)
        metrics = PortfolioMetricRepo(session)
        await engine.run(user_id, today=TODAY)
        ids = {r.date: r.id for r in await metrics.get_series(user_id)}

        await PriceHistoryRepo(session, IST).insert(
            Decimal("10200"), None, datetime(2025, 7, 16, 8, 30, tzinfo=timezone.utc), PriceSource.SCHEDULED_API
        )
        await engine.run(user_id, today=date(2025, 7, 17))
        session.expunge_all()

        rows = await metrics.get_series(user_id)
        assert [r.date for r in rows][-1] == date(2025, 7, 17)
        assert all(ids[r.date] == r.id for r in rows if r.date in ids)
        # 416 carat-grams at 10200 / 24
        assert rows[3].current_value == Decimal("176800.00")


    async def test_get_series_since(self, session, user_id):
        await _seed_prices(session)
        await _seed_purchases(session, user_id)
        await _engine(session).run(user_id, today=TODAY)

        rows = await PortfolioMetricRepo(session).get_series(user_id, since=date(2025, 7, 15))
        assert len(rows) == 2

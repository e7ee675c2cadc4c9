import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from goldfolio.db.models import GoldPurchase, PortfolioMetric, PriceObservation, PriceSourceState


class TestGoldPurchaseModel:
    async def test_create_purchase(self, session):
        purchase = GoldPurchase(
            user_id=uuid.uuid4(),
            weight_grams=Decimal("10.500"),
            purchase_date=date(2025, 3, 1),
            purchase_price_per_gram=Decimal("8662.00"),
            carat=22,
            total_amount=Decimal("90951.00"),
        )
        session.add(purchase)
        await session.commit()
        await session.refresh(purchase)

        assert purchase.id is not None
        assert purchase.weight_grams == Decimal("10.500")
        assert purchase.description is None
        assert purchase.created_at is not None

    @pytest.mark.parametrize("field,value", [
        ("carat", 0),
        ("carat", 25),
        ("weight_grams", Decimal("0")),
        ("purchase_price_per_gram", Decimal("-1")),
    ])
    async def test_check_constraints(self, session, field, value):
        values = dict(
            user_id=uuid.uuid4(),
            weight_grams=Decimal("1"),
            purchase_date=date(2025, 3, 1),
            purchase_price_per_gram=Decimal("8000"),
            carat=24,
            total_amount=Decimal("8000"),
        )
        values[field] = value
        session.add(GoldPurchase(**values))
        with pytest.raises(IntegrityError):
            await session.commit()


class TestPortfolioMetricModel:
    async def test_one_row_per_user_per_day(self, session):
        user_id = uuid.uuid4()
        for _ in range(2):
            session.add(PortfolioMetric(
                user_id=user_id,
                date=date(2025, 7, 14),
                investment=Decimal("90000"),
                current_value=Decimal("99880"),
                total_weight_grams=Decimal("10"),
            ))
        with pytest.raises(IntegrityError):
            await session.commit()


class TestPriceObservationModel:
    async def test_observed_at_stays_utc(self, session):
        obs = PriceObservation(
            price_per_gram_24k=Decimal("9988"),
            observed_at=datetime(2025, 7, 14, 8, 30, tzinfo=timezone.utc),
            market_date=date(2025, 7, 14),
            source="manual",
        )
        session.add(obs)
        await session.commit()
        session.expunge_all()

        loaded = await session.get(PriceObservation, obs.id)
        assert loaded.observed_at == datetime(2025, 7, 14, 8, 30, tzinfo=timezone.utc)
        assert loaded.price_per_gram_22k is None

    @pytest.mark.parametrize("source,ok", [("manual", True), ("scheduled-api", False), ("api", False)])
    async def test_one_non_manual_row_per_market_day(self, session, source, ok):
        def _row(src):
            return PriceObservation(
                price_per_gram_24k=Decimal("9988"),
                observed_at=datetime(2025, 7, 14, 8, 30, tzinfo=timezone.utc),
                market_date=date(2025, 7, 14),
                source=src,
            )

        session.add(_row(source))
        await session.commit()
        session.add(_row(source))
        if ok:
            await session.commit()
        else:
            with pytest.raises(IntegrityError):
                await session.commit()

    async def test_manual_row_does_not_occupy_the_day(self, session):
        for src in ("manual", "scheduled-api"):
            session.add(PriceObservation(
                price_per_gram_24k=Decimal("9988"),
                observed_at=datetime(2025, 7, 14, 8, 30, tzinfo=timezone.utc),
                market_date=date(2025, 7, 14),
                source=src,
            ))
        await session.commit()


class TestPriceSourceStateModel:
    async def test_default_index(self, session):
        session.add(PriceSourceState(provider="goldapi"))
        await session.commit()

        loaded = await session.get(PriceSourceState, "goldapi")
        assert loaded.last_good_index == 0

from dependency_injector import containers, providers

from goldfolio.config import Settings
from goldfolio.db.session import build_engine, build_session_factory
from goldfolio.valuation.service import ValuationService
from goldfolio.valuation.single_flight import SingleFlight


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=["goldfolio.api.deps"])

    settings = providers.Singleton(Settings)

    engine = providers.Singleton(
        build_engine,
        database_url=settings.provided.database_url,
        echo=settings.provided.debug,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    valuation_service = providers.Singleton(
        ValuationService,
        single_flight=providers.Singleton(SingleFlight),
    )

"""
taifex_lib — Main-contract close series for TAIFEX index futures.

Modules live under organised sub-packages:

    # Core infrastructure
    from src.taifex_lib.core.cache import get_cached_series, set_cached_series
    from src.taifex_lib.core.models import ClosePoint, SeriesResult, Session
    from src.taifex_lib.core.logging_config import setup_logging, get_logger

    # Parsing
    from src.taifex_lib.parsing.open_data import closes_from_open_data
    from src.taifex_lib.parsing.daily_report import extract_main_contract

    # External integrations
    from src.taifex_lib.integrations.taifex_client import TaifexClient

    # Services
    from src.taifex_lib.services.closes import series_from_daily_reports, get_or_warm
    from src.taifex_lib.services.data.main import app

Install in editable mode for development:

    pip install -e ".[test]"
"""

"""
taifex_lib.integrations — Upstream HTTP clients.

    from src.taifex_lib.integrations import TaifexClient
"""

from src.taifex_lib.integrations.taifex_client import TaifexClient

__all__ = ["TaifexClient"]

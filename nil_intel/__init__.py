"""
NIL market-intelligence core.

Batch jobs that turn roster, brand and scraped deal data into valuations,
rate cards, athlete×brand matches and structured deal intel. init_app()
prepares a process (CLI or RQ worker) to run them.
"""
import importlib


_MODEL_MODULES = [
    'nil_intel.models.athlete',
    'nil_intel.models.brand',
    'nil_intel.models.deal',
    'nil_intel.models.deal_intel',
    'nil_intel.models.match',
    'nil_intel.models.rate_card',
    'nil_intel.models.valuation',
]


def init_app():
    """Configure logging and register every model on Base.metadata.

    Schema is managed by Alembic, so no create_all() here.
    """
    from nil_intel.logging_config import configure_logging

    configure_logging()

    for module in _MODEL_MODULES:
        importlib.import_module(module)

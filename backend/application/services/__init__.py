from .bom_engine import BOMEngine, engine_settings

__all__ = ['BOMEngine', 'engine_settings']

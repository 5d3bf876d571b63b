from .logging_utils import get_logger, setup_logging, StrategyEventLogger

__all__ = ["get_logger", "setup_logging", "StrategyEventLogger"]

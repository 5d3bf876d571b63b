import logging
import sys
from collections import deque
from typing import Any, Dict, Optional
from datetime import datetime

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_loggers = {}

MAX_EVENTS = 1000

def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None):
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root_logger.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

def get_logger(name: str) -> logging.Logger:
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    _loggers[name] = logger
    return logger

class StrategyEventLogger:
    def __init__(self, name: str = "strategy", max_events: int = MAX_EVENTS):
        self.logger = get_logger(name)
        # Oldest events drop off once max_events is reached
        self.events = deque(maxlen=max_events)

    def _record(self, event_type: str, **fields: Any) -> Dict[str, Any]:
        event = {
            "timestamp": datetime.now().isoformat(),
            "type": event_type,
            **fields
        }
        self.events.append(event)
        return event

    def log_deploy(self, amount: int, expected_shares: int, min_shares: int, staked: int):
        self._record("deploy", amount=amount, expected_shares=expected_shares,
                     min_shares=min_shares, staked=staked)
        self.logger.info(f"[DEPLOY] {amount} -> {staked} shares staked (expected={expected_shares}, floor={min_shares})")

    def log_redeem(self, amount: int, shares: int, min_out: int, freed: int):
        self._record("redeem", amount=amount, shares=shares, min_out=min_out, freed=freed)
        self.logger.info(f"[REDEEM] requested={amount}, unstaked={shares} shares, floor={min_out}, freed={freed}")

    def log_harvest(self, outcome: Dict[str, Any]):
        self._record("harvest", **outcome)
        self.logger.info(
            f"[HARVEST] claimed={outcome.get('rewards_claimed')}, converted={outcome.get('converted')}, "
            f"staked={outcome.get('shares_staked')}, total_assets={outcome.get('total_assets')}"
        )

    def log_tend(self, swapped: int, received: int, deployed: int):
        self._record("tend", swapped=swapped, received=received, deployed=deployed)
        self.logger.info(f"[TEND] swapped={swapped} -> {received} reward, deployed={deployed}")

    def log_config(self, key: str, old_value: Any, new_value: Any, caller: str):
        self._record("config", key=key, old_value=old_value, new_value=new_value, caller=caller)
        self.logger.info(f"[CONFIG] {key}: {old_value} -> {new_value} (by {caller})")

    def get_events(self, event_type: Optional[str] = None) -> list:
        if event_type:
            return [e for e in self.events if e["type"] == event_type]
        return list(self.events)

    def clear(self):
        self.events.clear()

setup_logging()

import logging
from dataclasses import dataclass
from typing import Optional

DEFAULT_DEMO_LOG2_NUM_BITS = 13
DEFAULT_NUM_ENTRIES = 1024
DEFAULT_NUM_CHALLENGES = 1024


@dataclass
class DemoConfig:
    """Configuration for the false positive demonstration"""
    log2_num_bits: int = DEFAULT_DEMO_LOG2_NUM_BITS
    num_entries: int = DEFAULT_NUM_ENTRIES
    num_challenges: int = DEFAULT_NUM_CHALLENGES
    seed: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self):
        # Non-positive set sizes fall back to the defaults
        if self.num_entries is None or self.num_entries <= 0:
            self.num_entries = DEFAULT_NUM_ENTRIES
        if self.num_challenges is None or self.num_challenges <= 0:
            self.num_challenges = DEFAULT_NUM_CHALLENGES
        if self.log2_num_bits is None:
            self.log2_num_bits = DEFAULT_DEMO_LOG2_NUM_BITS
        self.log_level = self.log_level.upper()


def configure_logging(log_level: str = "INFO"):
    """Set up console logging for command line use"""
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

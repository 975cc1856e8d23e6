from dataclasses import dataclass
import os

# ---------------------------------------------------------
# Config / Settings
# ---------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    # Wheel Parameters
    initial_capital: float = 10_000.0
    call_premium_pct: float = 0.01   # decimal fraction, 0.01 == 1%
    put_premium_pct: float = 0.05
    call_strike_factor: float = 1.05  # +5% OTM
    put_strike_factor: float = 1.00   # ATM

    # Views
    recent_weeks: int = 52            # weekly analysis window
    default_time_range: str = "1Y"
    backtest_display_rows: int = 50
    daily_display_rows: int = 20

    # Filesystem / Logging
    data_root: str = os.getenv("WEEKLYWHEEL_DATA_ROOT", "")
    log_level: str = os.getenv("WEEKLYWHEEL_LOG_LEVEL", "INFO")


# ---------------------------------------------------------
# Field Maps
# ---------------------------------------------------------

# Backtest horizon -> number of newest weeks kept (None keeps everything)
TIME_RANGE_WEEKS = {
    "3M": 13,
    "6M": 26,
    "1Y": 52,
    "2Y": 104,
    "3Y": 156,
    "ALL": None,
}

OUTCOME_DESCRIPTIONS = {
    ("call", "ASSIGNED"): "Shares Called Away",
    ("call", "EXPIRED"): "Call Expired",
    ("put", "ASSIGNED"): "Put Assigned (Bought Stock)",
    ("put", "EXPIRED"): "Put Expired",
    ("call", "PENDING"): "Pending",
    ("put", "PENDING"): "Pending",
}


# ---------------------------------------------------------
# Singleton Accessor
# ---------------------------------------------------------

_settings_instance: Settings | None = None

def get_settings() -> Settings:
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance

from core.config import settings

# Price of one share in an empty vault; the first depositor mints 1:1
INITIAL_SHARE_PRICE = 1.0

BALANCE_EPSILON = settings.BALANCE_EPSILON

OPTIONS_WHEEL_STRATEGY = "options_wheel_strategy"
DELTA_NEUTRAL_STRATEGY = "delta_neutral_strategy"

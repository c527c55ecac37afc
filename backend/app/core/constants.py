# Fixed-point scales: prices are USD x 10^18 per whole token, amounts use 18 decimals
TOKEN_DECIMALS = 10**18
PRICE_SCALE = 10**18
USD_DECIMALS = 18

PERCENT_DENOMINATOR = 100

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Notification kinds (stored verbatim by the indexer)
EVENT_PURCHASE = "purchase"
EVENT_PRICE_STEP = "price_step"
EVENT_PHASE_ADVANCE = "phase_advance"
EVENT_POSITION_RELEASED = "position_released"
EVENT_SETTLEMENT = "settlement"

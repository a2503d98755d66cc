from core import constants


def calculate_share_price(total_assets: float, total_shares: float) -> float:
    if total_shares <= 0:
        return constants.INITIAL_SHARE_PRICE
    return total_assets / total_shares


def calculate_avg_entry_price(position, latest_pps, shares):
    if not position.shares or position.entry_price is None:
        return latest_pps
    avg_entry_price = (
        position.shares * position.entry_price + latest_pps * shares
    ) / (position.shares + shares)
    return avg_entry_price


def clamp_to_zero(value: float, epsilon: float = constants.BALANCE_EPSILON) -> float:
    # absorb float drift around zero, keep real negatives visible to the caller
    if -epsilon < value < epsilon:
        return 0.0
    return value

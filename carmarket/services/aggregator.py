from carmarket.db.models import Car, CAR_STATUSES


def compute_inventory_stats(cars: list[Car]) -> dict:
    """Compute dashboard statistics for the admin inventory."""
    stats = {
        "total_cars": len(cars),
        "featured_cars": sum(1 for c in cars if c.featured),
    }
    for status in CAR_STATUSES:
        stats[f"{status.lower()}_cars"] = sum(1 for c in cars if c.status == status)

    prices = [float(c.price) for c in cars if c.price is not None]
    if prices:
        stats["mean_price"] = round(sum(prices) / len(prices), 2)
        stats["median_price"] = _median(prices)
        stats["min_price"] = min(prices)
        stats["max_price"] = max(prices)

    sold_prices = [float(c.price) for c in cars if c.status == "SOLD" and c.price is not None]
    if sold_prices:
        stats["sold_value"] = round(sum(sold_prices), 2)

    mileages = [c.mileage for c in cars if c.mileage is not None]
    if mileages:
        stats["mean_mileage"] = round(sum(mileages) / len(mileages), 1)

    return stats


def _median(values: list) -> float:
    s = sorted(values)
    n = len(s)
    if n % 2 == 1:
        return s[n // 2]
    return round((s[n // 2 - 1] + s[n // 2]) / 2, 2)

"""Liquidation cluster analysis.

Reads aggregated liquidation data for a futures market and derives:
- nearest cluster and its distance from price
- liquidity grab zones (large cluster just above/below price)
- stop hunt targets
- cascade risk
- safe entry zones
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

PriceZone = Tuple[float, float]  # (price_low, price_high)

GRAB_DISTANCE_PCT = 2.0
GRAB_SIZE_SHARE = 0.05
HUNT_DISTANCE_PCT = 5.0
HUNT_SIZE_SHARE = 0.03
CASCADE_DISTANCE_PCT = 3.0
OI_PER_DAILY_LIQUIDATIONS = 20.0  # 24h liquidations are roughly 5% of open interest
CASCADE_HIGH_SHARE = 0.05
CASCADE_MEDIUM_SHARE = 0.02
DEFAULT_LIQUIDATION_DISTANCE_PCT = 10.0
NO_CLUSTER_DISTANCE_PCT = 100.0


@dataclass(frozen=True)
class LiquidationCluster:
    price: float
    size: float
    side: str  # "long" or "short"


@dataclass(frozen=True)
class LiquidationData:
    """Liquidation snapshot supplied by a futures data collaborator."""
    clusters: Tuple[LiquidationCluster, ...] = ()
    long_liquidations_24h: float = 0.0
    short_liquidations_24h: float = 0.0
    liquidation_distance: Optional[float] = None
    safe_entry_zones: Tuple[PriceZone, ...] = ()

    @property
    def total_24h(self) -> float:
        return self.long_liquidations_24h + self.short_liquidations_24h


@dataclass
class LiquidationAnalysis:
    """Result of analyze_liquidations."""
    long_clusters: List[LiquidationCluster] = field(default_factory=list)
    short_clusters: List[LiquidationCluster] = field(default_factory=list)
    nearest: Optional[LiquidationCluster] = None
    nearest_distance_pct: float = NO_CLUSTER_DISTANCE_PCT

    liquidity_grab: bool = False
    grab_zone: Optional[PriceZone] = None
    grab_side: str = "none"

    stop_hunt: bool = False
    stop_hunt_target: Optional[float] = None
    stop_hunt_side: str = "none"

    cascade_risk: str = "low"
    cascade_trigger: Optional[float] = None

    safe_entry_zones: List[PriceZone] = field(default_factory=list)
    safe_entry_confidence: float = 0.0


def _distance_pct(price: float, current_price: float) -> float:
    return abs(price - current_price) / current_price * 100


def _nearest(clusters: Sequence[LiquidationCluster], current_price: float) -> Optional[LiquidationCluster]:
    if not clusters:
        return None
    return min(clusters, key=lambda c: abs(c.price - current_price))


def analyze_liquidations(data: LiquidationData, current_price: float) -> LiquidationAnalysis:
    """Analyze liquidation clusters around the current price.

    Args:
        data: Liquidation snapshot
        current_price: Current mark price (must be > 0 for cluster metrics)

    Returns:
        LiquidationAnalysis (neutral defaults when price or clusters are missing)
    """
    result = LiquidationAnalysis()
    clusters = list(data.clusters)
    total = data.total_24h

    if current_price > 0 and clusters:
        result.long_clusters = [c for c in clusters if c.side == "long"]
        result.short_clusters = [c for c in clusters if c.side == "short"]
        result.nearest = _nearest(clusters, current_price)
        result.nearest_distance_pct = _distance_pct(result.nearest.price, current_price)

        for cluster in clusters:
            if (
                _distance_pct(cluster.price, current_price) < GRAB_DISTANCE_PCT
                and cluster.size > total * GRAB_SIZE_SHARE
            ):
                result.liquidity_grab = True
                result.grab_zone = (cluster.price * 0.995, cluster.price * 1.005)
                result.grab_side = cluster.side
                break

        largest = None
        for cluster in clusters:
            if _distance_pct(cluster.price, current_price) < HUNT_DISTANCE_PCT and (
                largest is None or cluster.size > largest.size
            ):
                largest = cluster
        if largest is not None and largest.size > total * HUNT_SIZE_SHARE:
            result.stop_hunt = True
            result.stop_hunt_target = largest.price
            result.stop_hunt_side = largest.side

        nearby = [c for c in clusters if _distance_pct(c.price, current_price) < CASCADE_DISTANCE_PCT]
        if nearby:
            nearby_size = sum(c.size for c in nearby)
            oi_estimate = total * OI_PER_DAILY_LIQUIDATIONS
            if nearby_size > oi_estimate * CASCADE_HIGH_SHARE:
                result.cascade_risk = "high"
            elif nearby_size > oi_estimate * CASCADE_MEDIUM_SHARE:
                result.cascade_risk = "medium"
            if result.cascade_risk != "low":
                result.cascade_trigger = _nearest(nearby, current_price).price

    # Safe entry: confidence grows with distance from liquidations, 10% = max
    distance = data.liquidation_distance or DEFAULT_LIQUIDATION_DISTANCE_PCT
    result.safe_entry_confidence = min(1.0, distance / 10)
    zones = list(data.safe_entry_zones)
    if not zones and distance > 3 and current_price > 0:
        zones = [(current_price * 0.99, current_price * 1.01)]
    result.safe_entry_zones = zones

    return result

# warehouse_sim/services/season_service.py
from datetime import date
from typing import Dict, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from warehouse_sim.models import MarketZoneSeasonScenario
from warehouse_sim.core.season_score import score_from_curve, DEFAULT_SEASON_SCORE

logger = logging.getLogger(__name__)

class SeasonScoreResolver:
    """Resolves the season score of a product in a market zone."""

    def __init__(self, session: Session):
        """Initialize the resolver.

        Args:
            session: Database session
        """
        self.session = session
        self._curves: Dict[Tuple[str, str], Optional[list]] = {}

    def _get_curve(self, market_zone: str, scenario_id: str) -> Optional[list]:
        key = (scenario_id, market_zone)
        if key not in self._curves:
            row = self.session.query(MarketZoneSeasonScenario).filter(
                MarketZoneSeasonScenario.scenario_id == scenario_id,
                MarketZoneSeasonScenario.market_zone == market_zone,
                MarketZoneSeasonScenario.is_active == True
            ).first()
            self._curves[key] = list(row.weeks_json) if row and row.weeks_json else None
        return self._curves[key]

    def get_season_score(
        self,
        market_zone: str,
        scenario_id: Optional[str],
        day_key: date
    ) -> Tuple[int, bool]:
        """Get the season score for a day.

        Args:
            market_zone: Market zone of the warehouse
            scenario_id: Season scenario of the product (may be None)
            day_key: Day key

        Returns:
            Tuple (score, missing_scenario); (100, True) when the product has
            no scenario or the zone has no active curve for it
        """
        if not scenario_id:
            return DEFAULT_SEASON_SCORE, True

        curve = self._get_curve(market_zone, scenario_id)
        if curve is None:
            logger.info(f"No active season curve for scenario {scenario_id} in zone {market_zone}")
            return DEFAULT_SEASON_SCORE, True

        return score_from_curve(curve, day_key), False

from mesa import Agent
from typing import Optional, Callable
import logging

from farm_abm.errors import StrategyError
from farm_abm.strategy.engine import Strategy
from farm_abm.strategy.status import StatusSnapshot

logger = logging.getLogger(__name__)


class StrategyAgent(Agent):
    """
    Mesa agent running a leveraged farming :class:`Strategy` on the model price.

    Attributes:
        strategy (Strategy): The engine being driven.
        last_status (StatusSnapshot): Snapshot taken after the latest tick.
        rebalanced (bool): Whether the latest tick triggered a rebalance.
        on_rebalance (Callable): Optional hook called after each rebalance.
    """

    def __init__(self, model, strategy: Strategy, on_rebalance: Optional[Callable] = None):
        super().__init__(model)
        self.strategy = strategy
        self.on_rebalance = on_rebalance
        self.rebalanced = False
        self.last_status: StatusSnapshot = strategy.status()

    def step(self):
        """Feed the current model price into the strategy and record its status."""
        try:
            self.rebalanced = self.strategy.next_price(self.model.current_price)
        except StrategyError:
            logger.error(
                "Agent %s stopped at price %s", self.unique_id, self.model.current_price
            )
            raise

        self.last_status = self.strategy.status()
        if self.rebalanced and self.on_rebalance:
            self.on_rebalance(self, self.last_status)

"""
Factory for creating slug generation strategies.
Uses caching to avoid creating multiple instances.
"""

from enum import Enum
from shortlink_app.services.slug_strategies import (
    SlugStrategy,
    Sha256SlugStrategy,
    Blake2bSlugStrategy
)
from shortlink_app.config import settings


class SlugStrategyType(Enum):
    """Available slug generation strategies"""
    SHA256 = "sha256"
    BLAKE2B = "blake2b"


class SlugFactory:
    """Factory for creating slug generation strategies with caching"""

    _instances = {}  # Cache for strategy instances

    @classmethod
    def create_strategy(
        cls,
        strategy_type: SlugStrategyType = None
    ) -> SlugStrategy:
        """
        Create or return cached slug generation strategy.

        Args:
            strategy_type: Type of strategy to create.
                          If None, uses value from settings.

        Returns:
            A cached instance of a SlugStrategy

        Raises:
            ValueError: If strategy_type is unknown
        """
        if strategy_type is None:
            strategy_type = SlugStrategyType(settings.slug_strategy)

        if strategy_type in cls._instances:
            return cls._instances[strategy_type]

        if strategy_type == SlugStrategyType.SHA256:
            instance = Sha256SlugStrategy()
        elif strategy_type == SlugStrategyType.BLAKE2B:
            instance = Blake2bSlugStrategy()
        else:
            raise ValueError(f"Unknown strategy type: {strategy_type}")

        cls._instances[strategy_type] = instance
        return instance

"""
DEX adapter modules for different AMM types.
"""

from .base import LiquiditySource, ProtocolKind
from .v2 import DEFAULT_V2_GAS, ConstantProductSource
from .v3 import (
    DEFAULT_V3_GAS,
    PARAM_STYLE_FEE,
    PARAM_STYLE_TICK_SPACING,
    ConcentratedLiquiditySource,
)

__all__ = [
    "LiquiditySource",
    "ProtocolKind",
    "ConstantProductSource",
    "ConcentratedLiquiditySource",
    "DEFAULT_V2_GAS",
    "DEFAULT_V3_GAS",
    "PARAM_STYLE_FEE",
    "PARAM_STYLE_TICK_SPACING",
]

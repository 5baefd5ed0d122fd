from .pool import V3PoolReader
from .position_manager import UniswapV3PositionManager, MintParams, MintResult, MintEventMissing
from .erc20 import Erc20Custody

from enum import Enum, IntEnum

class EngineState(IntEnum):
    DISABLED = 0
    ENABLED = 1

class StrategyKind(str, Enum):
    CONSERVATIVE = "conservative"
    AGGRESSIVE = "aggressive"

class SignalAction(str, Enum):
    BUY = "buy"
    SELL = "sell"

class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"

class AdmissionResult(IntEnum):
    IGNORED = 0
    EXECUTED = 1
    REJECTED_CONFIDENCE = 2
    REJECTED_DUPLICATE = 3
    REJECTED_INVALID = 4

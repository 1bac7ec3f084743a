"""
stagemorph: per-holder balances whose value converts as holders advance
through administrator-defined stages.
"""

from stagemorph.accounts import AccountRecord, AccountStore  # noqa: F401
from stagemorph.common.auth import AuthContext  # noqa: F401
from stagemorph.common.clock import ManualClock, SystemClock  # noqa: F401
from stagemorph.engine import MorphEngine  # noqa: F401
from stagemorph.ledger import ESCROW, ValueLedger  # noqa: F401
from stagemorph.stages import MAX_STAGES, StageDefinition, StageRegistry  # noqa: F401

__version__ = "0.1.0"

from .models import BPS_DENOMINATOR, StageDefinition  # noqa: F401
from .registry import MAX_STAGES, StageRegistry  # noqa: F401

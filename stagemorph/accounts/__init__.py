from .models import AccountRecord  # noqa: F401
from .store import AccountStore  # noqa: F401

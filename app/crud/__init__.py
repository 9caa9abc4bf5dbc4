from .crud_item import item  # noqa: F401
from .crud_comparison import comparison  # noqa: F401
from .crud_setting import engine_setting  # noqa: F401

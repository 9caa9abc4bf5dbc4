from .item import Item  # noqa: F401
from .comparison import Comparison  # noqa: F401
from .setting import EngineSetting  # noqa: F401

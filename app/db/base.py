# Import all the models, so that Base has them before being
# imported by Alembic
from app.db.base_class import Base  # noqa
from app.models.item import Item  # noqa
from app.models.comparison import Comparison  # noqa
from app.models.setting import EngineSetting  # noqa

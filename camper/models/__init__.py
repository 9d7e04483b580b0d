from camper.models.base import Base  # noqa: F401

from camper.models.user import User  # noqa: F401
from camper.models.session import SessionRecord  # noqa: F401
from camper.models.campground import Campground  # noqa: F401
from camper.models.image import Image  # noqa: F401
from camper.models.review import Review  # noqa: F401

"""SQLModel database models for the application."""

from sqlmodel import SQLModel  # noqa: F401

from .comics import *  # noqa
from .common import *  # noqa
from .couplets import *  # noqa
from .credits import *  # noqa
from .feedback import *  # noqa
from .gamification import *  # noqa
from .menus import *  # noqa
from .permissions import *  # noqa
from .points import *  # noqa
from .referral import *  # noqa
from .search import *  # noqa
from .site_settings import *  # noqa
from .system import *  # noqa
from .taxonomy import *  # noqa
from .users import *  # noqa
from .vip import *  # noqa

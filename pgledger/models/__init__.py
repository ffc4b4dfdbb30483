from ..extensions import db

from .user import AdminUser
from .building import Building, Room
from .student import Student
from .payment import Payment

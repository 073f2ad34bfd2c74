# Car rental backend — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.user import User                       # noqa
from app.models.admin import Admin                     # noqa
from app.models.car import Car                         # noqa
from app.models.booking import Booking, Attachment     # noqa
from app.models.message import Message                 # noqa
from app.models.payout_request import PayoutRequest   # noqa
from app.models.otp_code import OtpCode                # noqa

# app/models/__init__.py
# Import all models here so that SQLAlchemy can resolve relationships
# and Base.metadata sees every table.

from .profile import Profile
from .order import Order
from .response import Response
from .price_negotiation import PriceNegotiation
from .deal import Deal
from .message import Message
from .rating import Rating
from .favorite_carrier import FavoriteCarrier
from .loyalty import LoyaltyAccount, LoyaltyTransaction, LoyaltyReward
from .notification import Notification, PushSubscription
from .kyc_document import KycDocument
from .gps_location import GpsLocation
from .telegram import OtpCode, TelegramUser
from .subscription import SubscriptionPlan, UserSubscription, PaymentTransaction
from .security_event import SecurityEvent
from .referral import Referral
from .partner import PartnerApiKey, PartnerWebhook

# app/crud/__init__.py

from .crud_order import order
from .crud_response import response
from .crud_message import message
from .crud_rating import rating
from .crud_favorite_carrier import favorite_carrier

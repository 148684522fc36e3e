from .report import report
from .expense import expense
from .travel_request import travel_request
from .notification import notification

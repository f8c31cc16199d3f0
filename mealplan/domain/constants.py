# mealplan/domain/constants.py
from decimal import Decimal

PLAN_CAPACITY = 30          # meal units per plan period
PLAN_PERIOD_DAYS = 30
PER_ITEM_MAX = 5            # distinct plan orders per item per period
MAX_LINE_QUANTITY = 10      # per cart line, independent of the plan
EXTRA_ORDER_SURCHARGE = Decimal("1.2")
CURRENCY = "INR"

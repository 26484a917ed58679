"""
                Flame Kitchen Backend

Restaurant ordering and management API: menu, orders, payments,
staff dashboards and real-time order fan-out to the kitchen display,
point-of-sale terminals and customers.
"""

__version__ = "1.0.0"

"""
                Foodz Restaurant Ordering

Backend for a restaurant-ordering application: restaurants manage menus
and incoming orders, customers browse restaurants, build a cart and place
orders. Persistence, authentication and live updates are delegated to a
managed backend (Firebase) behind a hybrid Mock/Real service layer.

Author: Foodz Team
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Foodz Team"

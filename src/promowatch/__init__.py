"""
PromoWatch - Promotion change detection for monitored web pages.

Scrapes promotion listings, suppresses cosmetic noise, and reports
material changes (new, removed, and updated offers).
"""

__version__ = "0.1.0"
__app_name__ = "promowatch"

"""
Analytics: analyst rating summaries.
"""

from chartwallet.analytics.analyst import AnalystRecommendation, Rating

__all__ = ["AnalystRecommendation", "Rating"]

"""
SlackRat: search Slack channel history by keyword or pattern
"""

__version__ = "1.0.0"

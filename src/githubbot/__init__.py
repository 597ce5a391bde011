"""GitHub issue labeling bot.

This package receives GitHub "issues" webhooks and labels newly opened
issues from their description:
- Webhook signature validation and payload decoding
- Rule-based classification of the issue body (version and request kind)
- Label application through the GitHub REST API
"""

__version__ = "0.1.0"

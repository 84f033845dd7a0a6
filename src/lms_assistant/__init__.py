"""AI chat assistant for a learning-management system.

Routes chat messages to one of several interchangeable AI providers and
keeps an ordered, in-memory transcript of the conversation.
"""

__version__ = "0.1.0"

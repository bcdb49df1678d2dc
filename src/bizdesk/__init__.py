"""Bizdesk — business assistant backend.

Accounts (phone/password and Google sign-in), a knowledge library,
software reviews, market data pass-throughs, and a multi-persona
"business chat" that merges marketing, sales and finance answers.
"""

__version__ = "0.1.0"

"""
Auth Gateway

HTTP gateway delegating user registration, login and email verification
to Firebase Authentication.
"""

__version__ = "1.0.0"

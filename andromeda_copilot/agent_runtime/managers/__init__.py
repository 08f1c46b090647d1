"""State managers for the copilot.

Managers encapsulate state changes and business rules and raise domain
exceptions, never HTTP exceptions.  Routers and terminal front-ends
translate them for their own surface.
"""

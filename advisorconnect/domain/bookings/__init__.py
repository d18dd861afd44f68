"""
Bookings domain - Meeting creation workflow

A booking is validated against its link, persisted with an atomic use claim,
and then fans out to calendar sync and the advisor email. Those side effects
never fail the booking.
"""

"""
Module 'bookings': création idempotente des réservations après paiement vérifié.
"""

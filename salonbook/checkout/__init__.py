"""
Module 'checkout': créneaux, montants, et orchestration paiement -> réservation.
"""

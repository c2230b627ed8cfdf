"""Ticket booking desk: booking requests, reservation accounts and payments."""

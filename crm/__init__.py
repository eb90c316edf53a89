"""
CRM app for the brokerage platform.

Clients, owners, contact history and financial transactions.
"""

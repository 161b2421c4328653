"""Payments domain - Stripe checkout flows and webhook reconciliation"""

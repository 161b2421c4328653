"""Messaging domain - job conversations and the live notifier"""

"""Mechanic marketplace API"""

"""Customer self-service - email access codes, reschedule and cancel"""

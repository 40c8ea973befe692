"""
HTTP surface of the booking service.
"""

"""
Business services. Each public operation returns a ``ServiceResult``.
"""

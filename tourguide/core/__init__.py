"""
Core building blocks shared by every layer: exceptions, logging,
middleware, time source and constants.
"""

"""
HTTP layer: the inbound message trigger.
"""

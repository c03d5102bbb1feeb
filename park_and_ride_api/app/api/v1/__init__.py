"""
Version 1 of the Park and Ride API.
"""

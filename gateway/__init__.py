"""
Resilient query gateway for hospital data from the Overpass API.
"""

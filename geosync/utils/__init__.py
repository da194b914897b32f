"""Pure geographic helpers.

- geomath: Haversine distance, nearest-neighbour ordering, path length and bounds
"""

"""
Flight search layer: normalization of raw offers, client-side style
filtering/sorting/pagination, and the FlightService policy that ties them to
the configured flight data provider.
"""

"""
Product update server.

This package is responsible for:
* Building a cached index of update metadata from the product catalog.
* Serving that index to client installations over HTTP.
* Gating download references on purchase or active membership.
* Refreshing the index on demand or on an hourly schedule.
"""

"""GeoSPARQL bulk loader for MLIT national land numerical data.

Converts mesh population, land-use and flood-hazard feature collections
into GeoSPARQL triples and bulk-loads them into an RDF4J-compatible
triple store, with spatial aggregation of hazard zones and resumable,
retrying batch uploads.
"""

__version__ = "0.1.0"

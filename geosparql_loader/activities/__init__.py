"""Pipeline activities.

Each activity performs a single unit of work within a run:
- read_features: Stream source features from a vector file
- classify_features: Detect dataset kind and hazard type, read ranks
- aggregate_hazards: Group, cluster and merge hazard polygons into zones
- generate_triples: Map zones and features to GeoSPARQL triples
- load_triples: Upload triples in batches with retry and checkpoints
"""

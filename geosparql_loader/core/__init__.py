"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants (CRS codes, loader defaults)
- exceptions: Pipeline exception taxonomy
- geometry: Reprojection, WKT, cleaning and bounding-box helpers
- ontology: Namespaces, predicates, IRI builders and rank tables
"""

"""Predefined SPARQL queries and result rendering for the query utility.

Templates are written against the vocabulary in ``core.ontology`` and
take three parameters, substituted with ``string.Template``:

- ``$limit``: maximum rows returned;
- ``$year``: population snapshot year;
- ``$min_population``: lower bound on the population filter.

``render_table`` turns a SPARQL JSON result set into the aligned text
table the utility prints by default.
"""

from __future__ import annotations

from dataclasses import dataclass
from string import Template
from typing import Any

from geosparql_loader.core.exceptions import InputError
from geosparql_loader.core.ontology import sparql_prefixes

DEFAULT_LIMIT = 50
DEFAULT_YEAR = 2025
DEFAULT_MIN_POPULATION = 0

NO_RESULTS = "No results found."


class QueryTemplateError(InputError):
    """Raised for an unknown template name or an unusable query source."""

    default_stage = "query"
    default_code = "QUERY_TEMPLATE_INVALID"


@dataclass(frozen=True, slots=True)
class QueryTemplate:
    """A named, parameterised SPARQL ``SELECT`` body (no prefixes)."""

    name: str
    description: str
    body: str

    def render(
        self,
        *,
        limit: int = DEFAULT_LIMIT,
        year: int = DEFAULT_YEAR,
        min_population: int = DEFAULT_MIN_POPULATION,
    ) -> str:
        """Return the full query text with prefixes and parameters filled in."""
        if limit <= 0:
            msg = f"limit must be > 0, got {limit}"
            raise QueryTemplateError(msg)
        body = Template(self.body).substitute(
            limit=int(limit), year=int(year), min_population=int(min_population)
        )
        return f"{sparql_prefixes()}\n\n{body.strip()}\n"


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_DASHBOARD = """
SELECT
  (COUNT(DISTINCT ?mesh) AS ?totalMeshes)
  (SUM(?population2020) AS ?totalPopulation2020)
  (SUM(?populationYear) AS ?totalPopulationYear)
  (AVG(?elderlyRatio) AS ?avgElderlyRatio)
  (MAX(?population2020) AS ?maxPopulation)
  (MIN(?population2020) AS ?minPopulation)
WHERE {
  ?mesh rdf:type mlit:Mesh ;
        mlit:totalPopulation2020 ?population2020 ;
        mlit:hasPopulationData ?snapshot .
  ?snapshot mlit:populationYear $year ;
            mlit:totalPopulation ?populationYear ;
            mlit:ageCategory65Plus ?elderly .
  FILTER(?population2020 > $min_population && ?populationYear > 0)
  BIND(?elderly / ?populationYear AS ?elderlyRatio)
}
"""

_RANKING = """
SELECT ?meshId ?population2020 ?populationYear ?changeRate
WHERE {
  ?mesh rdf:type mlit:Mesh ;
        mlit:meshId ?meshId ;
        mlit:totalPopulation2020 ?population2020 ;
        mlit:hasPopulationData ?snapshot .
  ?snapshot mlit:populationYear $year ;
            mlit:totalPopulation ?populationYear .
  FILTER(?population2020 > $min_population && ?population2020 > 0)
  BIND((?populationYear - ?population2020) / ?population2020 AS ?changeRate)
}
ORDER BY DESC(?population2020)
LIMIT $limit
"""

_AGING = """
SELECT ?meshId ?populationYear ?elderly ?elderlyRatio
WHERE {
  ?mesh rdf:type mlit:Mesh ;
        mlit:meshId ?meshId ;
        mlit:hasPopulationData ?snapshot .
  ?snapshot mlit:populationYear $year ;
            mlit:totalPopulation ?populationYear ;
            mlit:ageCategory65Plus ?elderly .
  FILTER(?populationYear > $min_population && ?populationYear > 0)
  BIND(?elderly / ?populationYear AS ?elderlyRatio)
}
ORDER BY DESC(?elderlyRatio)
LIMIT $limit
"""

_MAPDATA = """
SELECT ?meshId ?population2020 ?wkt
WHERE {
  ?mesh rdf:type mlit:Mesh ;
        mlit:meshId ?meshId ;
        mlit:totalPopulation2020 ?population2020 ;
        geo:hasGeometry ?geometry .
  ?geometry geo:asWKT ?wkt .
  FILTER(?population2020 > $min_population)
}
ORDER BY ?meshId
LIMIT $limit
"""

_TIMESERIES = """
SELECT ?meshId ?year ?population
WHERE {
  ?mesh rdf:type mlit:Mesh ;
        mlit:meshId ?meshId .
  {
    ?mesh mlit:totalPopulation2020 ?population .
    BIND(2020 AS ?year)
  } UNION {
    ?mesh mlit:hasPopulationData ?snapshot .
    ?snapshot mlit:populationYear ?year ;
              mlit:totalPopulation ?population .
  }
  FILTER(?population > $min_population)
}
ORDER BY ?meshId ?year
LIMIT $limit
"""

_FLOOD_ZONES = """
SELECT ?hazardType ?rank (COUNT(?zone) AS ?zones) (SUM(?polygons) AS ?sourcePolygons)
WHERE {
  ?zone rdf:type mlit:FloodHazardZone ;
        mlit:hazardType ?hazardType .
  OPTIONAL { ?zone mlit:floodDepthRank ?depth }
  OPTIONAL { ?zone mlit:floodDurationRank ?duration }
  OPTIONAL { ?zone mlit:sourcePolygonCount ?polygons }
  BIND(COALESCE(?depth, ?duration) AS ?rank)
}
GROUP BY ?hazardType ?rank
ORDER BY ?hazardType ?rank
LIMIT $limit
"""

QUERY_TEMPLATES: dict[str, QueryTemplate] = {
    template.name: template
    for template in (
        QueryTemplate("dashboard", "Statistical summary for dashboard display", _DASHBOARD),
        QueryTemplate("ranking", "Population ranking with change rates", _RANKING),
        QueryTemplate("aging", "Meshes ranked by share of residents aged 65+", _AGING),
        QueryTemplate("mapdata", "Mesh geometries with population for map display", _MAPDATA),
        QueryTemplate("timeseries", "Population per mesh and year", _TIMESERIES),
        QueryTemplate("flood_zones", "Flood hazard zone counts by type and rank", _FLOOD_ZONES),
    )
}


def get_template(name: str) -> QueryTemplate:
    """Look up a template by name.

    Raises:
        QueryTemplateError: If no template has that name.
    """
    try:
        return QUERY_TEMPLATES[name]
    except KeyError:
        msg = f"Unknown query: {name}. Available queries: {', '.join(QUERY_TEMPLATES)}"
        raise QueryTemplateError(msg) from None


def describe_templates() -> str:
    """Listing of every template name with its description."""
    width = max(len(name) for name in QUERY_TEMPLATES)
    lines = ["Available queries:", ""]
    lines.extend(
        f"  {name.ljust(width)}  {template.description}"
        for name, template in QUERY_TEMPLATES.items()
    )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def result_rows(result: dict[str, Any]) -> tuple[list[str], list[list[str]]]:
    """``(headers, rows)`` of a SPARQL JSON result set; unbound cells are empty."""
    headers = list(result.get("head", {}).get("vars", []))
    bindings = result.get("results", {}).get("bindings", [])
    rows = [[binding.get(var, {}).get("value", "") for var in headers] for binding in bindings]
    return headers, rows


def render_table(result: dict[str, Any]) -> str:
    """Align a SPARQL JSON result set as a ``|``-separated text table."""
    if "boolean" in result:
        return str(bool(result["boolean"])).lower()

    headers, rows = result_rows(result)
    if not rows:
        return NO_RESULTS

    widths = [
        max(len(header), *(len(row[i]) for row in rows)) for i, header in enumerate(headers)
    ]
    lines = [
        " | ".join(header.ljust(widths[i]) for i, header in enumerate(headers)).rstrip(),
        "-+-".join("-" * width for width in widths),
    ]
    lines.extend(
        " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip() for row in rows
    )
    return "\n".join(lines)

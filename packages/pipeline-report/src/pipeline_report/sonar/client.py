"""SonarQube Web API client (read-only)."""

from __future__ import annotations

import httpx

from pipeline_report.sonar.models import (
    CoverageFile,
    Duplication,
    DuplicationBlock,
    GateCondition,
    Hotspot,
    Issue,
    QualityGateStatus,
)

METRIC_KEYS: tuple[str, ...] = (
    "bugs",
    "vulnerabilities",
    "code_smells",
    "coverage",
    "duplicated_lines_density",
    "ncloc",
    "sqale_rating",
    "reliability_rating",
    "security_rating",
    "complexity",
    "cognitive_complexity",
    "lines_to_cover",
    "uncovered_lines",
    "branch_coverage",
    "new_bugs",
    "new_vulnerabilities",
    "new_code_smells",
    "new_coverage",
    "new_duplicated_lines_density",
    "alert_status",
)

COVERAGE_METRIC_KEYS: tuple[str, ...] = (
    "coverage",
    "line_coverage",
    "branch_coverage",
    "uncovered_lines",
    "uncovered_conditions",
)


def _start_line(raw: dict) -> int | None:
    text_range = raw.get("textRange") or {}
    line = text_range.get("startLine", raw.get("line"))
    return int(line) if line is not None else None


def _measure_value(measure: dict) -> str | None:
    """Plain measures carry `value`; new-code measures carry a period value."""
    if "value" in measure:
        return str(measure["value"])
    period = measure.get("period")
    if period and "value" in period:
        return str(period["value"])
    for p in measure.get("periods", []):
        if "value" in p:
            return str(p["value"])
    return None


class SonarClient:
    """Thin async wrapper around the endpoints the report reads."""

    def __init__(
        self,
        host_url: str,
        token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.host_url = host_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.host_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def _get(self, path: str, params: dict) -> dict:
        resp = await self._client.get(path, params=params)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"{path} returned a non-object payload")
        return data

    async def get_metrics(self, project_key: str) -> dict[str, str]:
        data = await self._get(
            "/api/measures/component",
            {"component": project_key, "metricKeys": ",".join(METRIC_KEYS)},
        )
        metrics: dict[str, str] = {}
        for measure in (data.get("component") or {}).get("measures", []):
            value = _measure_value(measure)
            if value is not None:
                metrics[measure["metric"]] = value
        return metrics

    async def get_quality_gate(self, project_key: str) -> QualityGateStatus:
        data = await self._get(
            "/api/qualitygates/project_status", {"projectKey": project_key}
        )
        status = data.get("projectStatus") or {}
        return QualityGateStatus(
            status=status.get("status", "NONE"),
            conditions=[
                GateCondition(
                    metric=c.get("metricKey", ""),
                    status=c.get("status", ""),
                    actual=c.get("actualValue"),
                    threshold=c.get("errorThreshold"),
                )
                for c in status.get("conditions", [])
            ],
        )

    async def get_issues(self, project_key: str, page_size: int = 50) -> list[Issue]:
        data = await self._get(
            "/api/issues/search",
            {
                "componentKeys": project_key,
                "resolved": "false",
                "ps": page_size,
                "s": "SEVERITY",
                "asc": "false",
                "additionalFields": "rules,comments",
            },
        )
        return [
            Issue(
                severity=raw.get("severity", "INFO"),
                message=raw.get("message", ""),
                component=raw.get("component", ""),
                line=_start_line(raw),
                rule=raw.get("rule", ""),
            )
            for raw in data.get("issues", [])
        ]

    async def get_hotspots(self, project_key: str, page_size: int = 20) -> list[Hotspot]:
        data = await self._get(
            "/api/hotspots/search",
            {"projectKey": project_key, "ps": page_size, "status": "TO_REVIEW"},
        )
        return [
            Hotspot(
                probability=raw.get("vulnerabilityProbability", ""),
                message=raw.get("message", ""),
                component=raw.get("component", ""),
                line=_start_line(raw),
            )
            for raw in data.get("hotspots", [])
        ]

    async def get_duplications(self, project_key: str) -> list[Duplication]:
        data = await self._get("/api/duplications/show", {"key": project_key})
        return [
            Duplication(
                blocks=[
                    DuplicationBlock(
                        file_ref=str(b.get("_ref", "")),
                        from_line=int(b.get("from", 0)),
                        size=int(b.get("size", 0)),
                    )
                    for b in dup.get("blocks", [])
                ]
            )
            for dup in data.get("duplications", [])
        ]

    async def get_coverage_files(self, project_key: str, page_size: int = 10) -> list[CoverageFile]:
        # Lowest coverage first
        data = await self._get(
            "/api/measures/component_tree",
            {
                "component": project_key,
                "metricKeys": ",".join(COVERAGE_METRIC_KEYS),
                "qualifiers": "FIL",
                "ps": page_size,
                "s": "metric",
                "metricSort": "coverage",
                "asc": "true",
            },
        )
        files = []
        for comp in data.get("components", []):
            measures = {}
            for m in comp.get("measures", []):
                value = _measure_value(m)
                if value is not None:
                    measures[m["metric"]] = value
            files.append(
                CoverageFile(
                    name=comp.get("name", comp.get("key", "")),
                    path=comp.get("path", ""),
                    measures=measures,
                )
            )
        return files

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> SonarClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

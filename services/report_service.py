# -*- coding: utf-8 -*-

import datetime as dt
from typing import Dict, List, Sequence

from core.stats_calculator import MONTHS_SHORT, DistribItem, HeatmapDay, PeriodRange
from services.stats_service import Dashboard

# placeholders the renderer turns into colored blocks
LEVEL_TOKEN = "{lvl:%d}"
COLOR_TOKEN = "{color:%s}"

_PERIOD_TITLES = {
    "today": "Hoy",
    "week": "Esta semana",
    "month": "Este mes",
    "year": "Este año",
    "custom": "Período",
}


def _cell(text: str) -> str:
    return (text or "").replace("|", "\\|").replace("\n", " ")


def _range_label(rng: PeriodRange) -> str:
    a, b = rng.start.date(), rng.end.date()
    if a == b:
        return a.isoformat()
    return f"{a.isoformat()} → {b.isoformat()}"


class ReportService:
    """Stats dashboard -> markdown document."""

    def build_markdown(self, dash: Dashboard) -> str:
        out: List[str] = []
        out.append(f"# {_PERIOD_TITLES.get(dash.period.value, 'Estadísticas')}")
        out.append(f"_{_range_label(dash.range)}_")
        out.append("")

        out.append("| " + " | ".join(_cell(m.label) for m in dash.metrics) + " |")
        out.append("|" + "---|" * len(dash.metrics))
        out.append(
            "| "
            + " | ".join(
                _cell(m.value + (f" ({m.sub})" if m.sub else "")) for m in dash.metrics
            )
            + " |"
        )
        out.append("")

        out.append("## Resumen")
        for ins in dash.insights:
            sub = f" · {ins.sub}" if ins.sub else ""
            out.append(f"- **{_cell(ins.label)}:** {_cell(ins.value)}{sub}")
        out.append("")

        out += self._distribution("Proyectos", dash.distribution.projects)
        out += self._distribution("Clientes", dash.distribution.clients)
        out += self._distribution("Tareas", dash.distribution.tasks)

        out.append("## Sesiones recientes")
        if not dash.recent:
            out.append("Sin sesiones en este período.")
        else:
            out.append("| Fecha | Hora | Tarea | Proyecto | Cliente | Duración |")
            out.append("|---|---|---|---|---|---|")
            for r in dash.recent:
                out.append(
                    f"| {_cell(r.date)} | {r.time} | {_cell(r.task)} | "
                    f"{_cell(r.project)} | {_cell(r.client)} | {r.duration} |"
                )
        out.append("")

        out.append(f"## Actividad {dash.range.end.year}")
        out += self._heatmap(dash.heatmap)
        out.append("")
        out.append(
            f"Racha actual: **{dash.streak.current}** · "
            f"mejor racha: **{dash.streak.best}**"
        )
        return "\n".join(out) + "\n"

    def _distribution(self, title: str, items: Sequence[DistribItem]) -> List[str]:
        lines = [f"## {title}"]
        if not items:
            lines += ["Sin actividad.", ""]
            return lines
        lines.append("| | Nombre | Horas | |")
        lines.append("|---|---|---|---|")
        for it in items:
            lines.append(
                f"| {COLOR_TOKEN % it.color} | {_cell(it.name)} "
                f"| {it.hours:.1f}h | {_cell(it.sub)} |"
            )
        lines.append("")
        return lines

    def _heatmap(self, days: Sequence[HeatmapDay]) -> List[str]:
        by_month: Dict[int, List[HeatmapDay]] = {}
        for d in days:
            if d.is_empty:
                continue
            by_month.setdefault(dt.date.fromisoformat(d.date).month, []).append(d)

        lines = []
        for month in sorted(by_month):
            cells = "".join(LEVEL_TOKEN % d.level for d in by_month[month])
            hours = sum(d.hours for d in by_month[month])
            lines.append(f"`{MONTHS_SHORT[month - 1]}` {cells} {hours:.1f}h  ")
        return lines

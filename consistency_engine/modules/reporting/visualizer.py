"""
Analysis Report Visualizer for the Entity Consistency Engine.

Generates a self-contained HTML report with:
1. Bar chart of per-entity scores against the recommendation bands
2. 2-D PCA map of the content embedding and the entity references
"""

import html
import logging
from pathlib import Path

import numpy as np
import plotly.graph_objects as go
import plotly.offline
from sklearn.decomposition import PCA

from consistency_engine.core.config_loader import ThresholdConfig
from consistency_engine.core.orchestrator import AnalysisRun

logger = logging.getLogger(__name__)

# Color palette
COLORS = {
    "accept": "#2E8B57",       # Sea green
    "review": "#DAA520",       # Goldenrod
    "regenerate": "#B22222",   # Firebrick
    "content": "#1E90FF",      # Dodger blue
    "reference": "#8B4513",    # Saddle brown
    "failed": "#999999",
}


class AnalysisReportVisualizer:
    """Generates visual reports from consistency analyses."""

    def __init__(self, thresholds: ThresholdConfig | None = None) -> None:
        self.thresholds = thresholds or ThresholdConfig()

    def generate_report(
        self,
        run: AnalysisRun,
        output_path: Path,
        title: str | None = None,
    ) -> Path:
        """Generate the HTML report of an analysis run.

        Args:
            run: The analysis and the vectors behind it.
            output_path: Where to save the HTML report.
            title: Optional report subtitle (e.g. the generation ID).

        Returns:
            Path to the generated HTML file.
        """
        output_path = Path(output_path)
        names = {e.id: e.name for e in run.entities}

        bar_chart = self._create_bar_chart(run, names)
        embedding_map = self._create_embedding_map(run, names)

        html_content = self._build_html_report(
            subtitle=title or "Consistency analysis",
            bar_chart=bar_chart,
            embedding_map=embedding_map,
            run=run,
        )

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(html_content)

        logger.info("Report saved to %s", output_path)
        return output_path

    def _band_color(self, score: int) -> str:
        if score >= self.thresholds.accept_min:
            return COLORS["accept"]
        if score >= self.thresholds.review_min:
            return COLORS["review"]
        return COLORS["regenerate"]

    def _create_bar_chart(self, run: AnalysisRun, names: dict[str, str]) -> str:
        """Create bar chart of entity scores.

        Returns:
            Plotly figure as HTML div.
        """
        scores = run.analysis.entity_scores
        failed = set(run.analysis.failed_entity_ids)
        ordered = sorted(scores.items(), key=lambda x: x[1], reverse=True)

        labels = [names.get(entity_id, entity_id) for entity_id, _ in ordered]
        values = [score for _, score in ordered]
        colors = [
            COLORS["failed"] if entity_id in failed else self._band_color(score)
            for entity_id, score in ordered
        ]

        fig = go.Figure()
        fig.add_trace(go.Bar(
            x=labels,
            y=values,
            marker=dict(color=colors),
            text=[f"{v}%" for v in values],
            textposition="outside",
            hovertemplate="<b>%{x}</b><br>Score: %{y}%<extra></extra>",
        ))

        fig.add_hline(
            y=self.thresholds.accept_min,
            line_dash="dash",
            line_color=COLORS["accept"],
            annotation_text="accept",
        )
        fig.add_hline(
            y=self.thresholds.review_min,
            line_dash="dash",
            line_color=COLORS["review"],
            annotation_text="review",
        )

        fig.update_layout(
            title=dict(
                text=f"<b>Entity Consistency (overall {run.analysis.overall_score}%)</b>",
                x=0.5,
                font=dict(size=18),
            ),
            yaxis=dict(title="Score (%)", range=[0, 110], gridcolor="#E0E0E0"),
            xaxis=dict(title=""),
            plot_bgcolor="#FAFAFA",
            paper_bgcolor="white",
            height=420,
            margin=dict(l=60, r=60, t=80, b=80),
        )

        return fig.to_html(include_plotlyjs=False, full_html=False, div_id="bar_chart")

    def _create_embedding_map(self, run: AnalysisRun, names: dict[str, str]) -> str | None:
        """Project the content and reference embeddings to 2-D with PCA.

        Returns:
            Plotly figure as HTML div, or None when there is nothing to
            project (fewer than two comparable vectors).
        """
        content = run.content_embedding
        references = {
            entity_id: vector
            for entity_id, vector in run.reference_embeddings.items()
            if np.asarray(vector).shape == content.shape
        }

        if not references or content.size < 2:
            logger.info("Skipping embedding map: not enough comparable vectors")
            return None

        entity_ids = list(references)
        matrix = np.vstack([content] + [references[i] for i in entity_ids])
        if np.allclose(matrix, matrix[0]):
            logger.info("Skipping embedding map: all vectors coincide")
            return None

        pca = PCA(n_components=2)
        points = pca.fit_transform(matrix)
        variance = float(np.sum(pca.explained_variance_ratio_)) * 100

        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=points[1:, 0],
            y=points[1:, 1],
            mode="markers+text",
            name="Entity references",
            text=[names.get(i, i) for i in entity_ids],
            textposition="top center",
            marker=dict(size=12, color=COLORS["reference"]),
            customdata=[run.analysis.entity_scores.get(i) for i in entity_ids],
            hovertemplate="<b>%{text}</b><br>Score: %{customdata}%<extra></extra>",
        ))
        fig.add_trace(go.Scatter(
            x=[points[0, 0]],
            y=[points[0, 1]],
            mode="markers+text",
            name="Generated content",
            text=["Content"],
            textposition="bottom center",
            marker=dict(size=16, color=COLORS["content"], symbol="star"),
        ))

        fig.update_layout(
            title=dict(
                text=(
                    "<b>Embedding Map</b><br>"
                    f"<sub>PCA 2D ({variance:.1f}% variance explained)</sub>"
                ),
                x=0.5,
            ),
            xaxis=dict(title="PC1", zeroline=False, gridcolor="#E0E0E0"),
            yaxis=dict(title="PC2", zeroline=False, gridcolor="#E0E0E0"),
            plot_bgcolor="#FAFAFA",
            paper_bgcolor="white",
            height=520,
        )

        return fig.to_html(include_plotlyjs=False, full_html=False, div_id="embedding_map")

    def _drift_table(self, run: AnalysisRun) -> str:
        rows = [
            "<tr>"
            f"<td>{html.escape(d.subject_name)}</td>"
            f"<td>{html.escape(d.expected_description)}</td>"
            f"<td>{html.escape(d.issue_text)}</td>"
            f"<td class=\"sev-{d.severity.value}\">{d.severity.value}</td>"
            "</tr>"
            for d in run.analysis.drifted_attributes
        ]
        if not rows:
            return "<p>No drift detected.</p>"
        return (
            "<table><tr><th>Entity</th><th>Expected</th><th>Issue</th>"
            f"<th>Severity</th></tr>{''.join(rows)}</table>"
        )

    def _build_html_report(
        self,
        subtitle: str,
        bar_chart: str,
        embedding_map: str | None,
        run: AnalysisRun,
    ) -> str:
        """Build complete HTML report with tabs."""
        # Get Plotly JS for offline use
        plotly_js = plotly.offline.get_plotlyjs()

        analysis = run.analysis
        tab_buttons = ['<button class="tab-btn active" onclick="showTab(\'scores\')">Scores</button>']
        tab_contents = [
            f'<div id="tab-scores" class="tab-content active">{bar_chart}'
            f'<h3>Drifted entities</h3>{self._drift_table(run)}</div>'
        ]
        if embedding_map is not None:
            tab_buttons.append('<button class="tab-btn" onclick="showTab(\'map\')">Embedding Map</button>')
            tab_contents.append(f'<div id="tab-map" class="tab-content">{embedding_map}</div>')

        recommendation = analysis.recommendation.value

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Consistency Report: {html.escape(subtitle)}</title>
    <script type="text/javascript">{plotly_js}</script>
    <style>
        * {{ box-sizing: border-box; margin: 0; padding: 0; }}
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: #f5f5f5; }}
        .header {{ background: linear-gradient(135deg, #1a1a2e 0%, #16213e 100%); color: white; padding: 30px; text-align: center; }}
        .header h1 {{ font-size: 28px; margin-bottom: 8px; }}
        .header .subtitle {{ opacity: 0.8; font-size: 14px; }}
        .container {{ max-width: 1200px; margin: 0 auto; padding: 20px; }}
        .verdict {{ background: white; padding: 15px; border-radius: 8px; margin-bottom: 20px; border-left: 6px solid {COLORS[recommendation]}; }}
        .tabs {{ display: flex; flex-wrap: wrap; gap: 8px; margin-bottom: 20px; background: white; padding: 15px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }}
        .tab-btn {{ padding: 10px 20px; border: none; background: #e0e0e0; border-radius: 6px; cursor: pointer; font-size: 13px; }}
        .tab-btn.active {{ background: #1E90FF; color: white; }}
        .tab-content {{ display: none; background: white; padding: 20px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }}
        .tab-content.active {{ display: block; }}
        table {{ width: 100%; border-collapse: collapse; margin-top: 10px; font-size: 13px; }}
        th, td {{ text-align: left; padding: 8px; border-bottom: 1px solid #e0e0e0; }}
        .sev-high {{ color: {COLORS["regenerate"]}; font-weight: bold; }}
        .sev-medium {{ color: {COLORS["review"]}; font-weight: bold; }}
        .sev-low {{ color: {COLORS["accept"]}; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>Consistency Report</h1>
        <div class="subtitle">{html.escape(subtitle)}</div>
    </div>

    <div class="container">
        <div class="verdict">
            <b>{analysis.overall_score}% &middot; {recommendation.upper()}</b>
            <p>{html.escape(analysis.message)}</p>
        </div>
        <div class="tabs">
            {''.join(tab_buttons)}
        </div>

        {''.join(tab_contents)}
    </div>

    <script>
        function showTab(tabId) {{
            document.querySelectorAll('.tab-content').forEach(el => el.classList.remove('active'));
            document.querySelectorAll('.tab-btn').forEach(el => el.classList.remove('active'));
            document.getElementById('tab-' + tabId).classList.add('active');
            event.target.classList.add('active');
            window.dispatchEvent(new Event('resize'));
        }}
    </script>
</body>
</html>"""

import logging
import pandas as pd
from pathlib import Path
from typing import Dict, Any, List
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Image, Table, TableStyle, PageBreak, KeepTogether
)

from utils.error_handling import handle_engine_errors
from utils import constants

class ReportingEngine:
    """
    Renders the run into a single PDF: KPIs, the selected model and its
    regularization, the alpha leaderboard, confusion matrix, top coefficients
    and the diagnostic plots laid out in a two-column grid.
    """
    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.enabled = config.get('outputs', {}).get('save_reports_pdf', True)
        self.top_coefficients = config.get('evaluation', {}).get('top_coefficients', 10)
        self._init_styles()

    def _init_styles(self):
        """Initialize report styles."""
        self.styles = getSampleStyleSheet()

        self.title_style = ParagraphStyle(
            'ReportTitle',
            parent=self.styles['Title'],
            fontSize=22,
            spaceAfter=16,
            textColor=colors.darkblue
        )

        self.h1 = ParagraphStyle(
            'CustomH1',
            parent=self.styles['Heading1'],
            fontSize=16,
            spaceBefore=12,
            spaceAfter=8,
            textColor=colors.darkblue,
            keepWithNext=True
        )

        self.normal = ParagraphStyle(
            'CustomNormal',
            parent=self.styles['Normal'],
            fontSize=10,
            leading=14,
            alignment=TA_JUSTIFY,
            spaceAfter=6
        )

        self.caption_style = ParagraphStyle(
            'Caption',
            parent=self.styles['Normal'],
            fontSize=9,
            alignment=TA_CENTER,
            textColor=colors.dimgrey,
            spaceAfter=12
        )

    @handle_engine_errors("Reporting")
    def generate_report(self, report_data: Dict[str, Any], run_id: str) -> str:
        """
        Build the PDF report.

        Returns:
            Path of the PDF, or "" when PDF reporting is disabled.
        """
        if not self.enabled:
            self.logger.info("PDF reporting disabled in config.")
            return ""

        self.logger.info("Starting Report Generation...")

        base_dir = self.config.get('outputs', {}).get('base_results_dir', 'results')
        output_dir = Path(base_dir) / constants.REPORTING_DIR
        output_dir.mkdir(parents=True, exist_ok=True)

        path = output_dir / f"glm_grid_report_{run_id}.pdf"
        doc = SimpleDocTemplate(str(path), pagesize=letter)
        story = []

        story.append(Paragraph("GLM Regularization Grid Search", self.title_style))
        story.append(Paragraph(f"Run ID: {run_id} | Grid: {report_data.get('grid_id', '')}", self.normal))
        story.append(Spacer(1, 0.3*inch))

        # 1. KPIs
        split = report_data.get('split', 'test')
        story.append(Paragraph("1. Key Performance Indicators", self.h1))
        story.append(self._create_kpi_table(report_data.get('metrics', {}), split))
        story.append(Spacer(1, 0.2*inch))

        # 2. Selected model
        story.append(Paragraph("2. Selected Model", self.h1))
        story.append(Paragraph(self._model_narrative(report_data), self.normal))
        story.append(self._create_key_value_table(report_data.get('regularization', {})))

        # 3. Leaderboard
        leaderboard = report_data.get('leaderboard')
        if leaderboard is not None and not leaderboard.empty:
            story.append(Paragraph("3. Grid Leaderboard", self.h1))
            story.append(self._create_dataframe_table(leaderboard, header_color=colors.teal))

        # 4. Confusion matrix and coefficients
        story.append(PageBreak())
        confusion = report_data.get('confusion_matrix')
        if confusion is not None and not confusion.empty:
            story.append(Paragraph(f"4. Confusion Matrix ({split})", self.h1))
            story.append(KeepTogether([self._create_dataframe_table(confusion), Spacer(1, 0.2*inch)]))

        coefficients = report_data.get('coefficients')
        if coefficients is not None and not coefficients.empty:
            story.append(Paragraph(f"5. Top {self.top_coefficients} Coefficients", self.h1))
            story.append(self._create_dataframe_table(coefficients.head(self.top_coefficients)))

        # 6. Plots
        plots = report_data.get('plots', [])
        if plots:
            story.append(PageBreak())
            story.append(Paragraph("6. Diagnostics", self.h1))
            self._add_image_grid(story, plots, cols=2)

        doc.build(story)
        self.logger.info(f"Generated report: {path}")
        return str(path)

    # =========================================================================
    #                           COMPONENT BUILDERS
    # =========================================================================

    def _create_kpi_table(self, metrics: Dict[str, Any], split: str) -> Table:
        rows = [["Metric", f"{split.title()} Result", "Direction"]]
        for key, label, direction in (
            ('auc', 'AUC', 'Higher is better'),
            ('aucpr', 'AUC-PR', 'Higher is better'),
            ('logloss', 'Log Loss', 'Lower is better'),
            ('rmse', 'RMSE', 'Lower is better'),
        ):
            rows.append([label, self._fmt(metrics.get(key)), direction])

        t = Table(rows, colWidths=[2.5*inch, 2*inch, 2.5*inch])
        t.setStyle(TableStyle([
            ('BACKGROUND', (0,0), (-1,0), colors.navy),
            ('TEXTCOLOR', (0,0), (-1,0), colors.white),
            ('FONTNAME', (0,0), (-1,0), 'Helvetica-Bold'),
            ('ALIGN', (0,0), (-1,-1), 'CENTER'),
            ('GRID', (0,0), (-1,-1), 1, colors.lightgrey),
            ('ROWBACKGROUNDS', (0,1), (-1,-1), [colors.whitesmoke, colors.white]),
        ]))
        return t

    def _create_key_value_table(self, data: Dict[str, Any]) -> Table:
        rows = [["Field", "Value"]] + [[str(k), self._fmt(v)] for k, v in data.items()]
        t = Table(rows, colWidths=[2.5*inch, 4.5*inch])
        t.setStyle(TableStyle([
            ('BACKGROUND', (0,0), (-1,0), colors.darkslategray),
            ('TEXTCOLOR', (0,0), (-1,0), colors.white),
            ('GRID', (0,0), (-1,-1), 0.5, colors.grey),
            ('FONTSIZE', (0,0), (-1,-1), 8),
        ]))
        return t

    def _create_dataframe_table(self, df: pd.DataFrame, header_color=colors.darkslategray) -> Table:
        rows = [[str(c) for c in df.columns]]
        for record in df.itertuples(index=False):
            rows.append([self._fmt(v) for v in record])

        col_w = 7.0 / max(len(df.columns), 1)
        t = Table(rows, colWidths=[col_w*inch] * len(df.columns), repeatRows=1)
        t.setStyle(TableStyle([
            ('BACKGROUND', (0,0), (-1,0), header_color),
            ('TEXTCOLOR', (0,0), (-1,0), colors.white),
            ('GRID', (0,0), (-1,-1), 0.5, colors.grey),
            ('FONTSIZE', (0,0), (-1,-1), 7),
            ('ROWBACKGROUNDS', (0,1), (-1,-1), [colors.aliceblue, colors.white]),
        ]))
        return t

    def _model_narrative(self, data: Dict[str, Any]) -> str:
        reg = data.get('regularization', {})
        metrics = data.get('metrics', {})
        text = (
            f"The grid selected <b>{data.get('best_model_id', 'n/a')}</b> "
            f"by <b>{data.get('sort_by', 'auc')}</b>. "
            f"It uses a <b>{reg.get('penalty', 'n/a')}</b> penalty "
            f"(alpha = {self._fmt(reg.get('alpha'))}, lambda = {self._fmt(reg.get('lambda'))}) "
        )
        active = reg.get('number_of_active_predictors')
        total = reg.get('number_of_predictors_total')
        if active is not None and total is not None:
            text += f"and keeps {active} of {total} predictors active. "
        if metrics.get('auc') is not None:
            text += f"{data.get('split', 'test').title()} AUC is <b>{metrics['auc']:.4f}</b>."
        return text

    @staticmethod
    def _fmt(value: Any) -> str:
        if value is None:
            return "n/a"
        if isinstance(value, float):
            return f"{value:.6g}"
        return str(value)

    def _add_image_grid(self, story, image_paths: List[str], cols=2):
        """
        Arranges images in a Grid (Table) to save space.
        cols=2 means 2 images per row.
        """
        grid_data = []
        current_row = []

        # Usable page width is ~7.5 inch, so each image max ~3.5 inch wide
        img_width = 3.4 * inch
        img_height = 2.6 * inch

        for p_str in image_paths:
            path = Path(p_str)
            if not path.exists():
                self.logger.warning(f"Plot not found, skipping in report: {path}")
                continue

            img = Image(str(path), width=img_width, height=img_height, kind='proportional')
            caption_text = path.stem.replace('_', ' ').title()
            current_row.append([img, Paragraph(caption_text, self.caption_style)])

            if len(current_row) == cols:
                grid_data.append(current_row)
                current_row = []

        if current_row:
            while len(current_row) < cols:
                current_row.append("")
            grid_data.append(current_row)

        if grid_data:
            t = Table(grid_data, colWidths=[img_width + 0.1*inch] * cols)
            t.setStyle(TableStyle([
                ('VALIGN', (0,0), (-1,-1), 'TOP'),
                ('ALIGN', (0,0), (-1,-1), 'CENTER'),
                ('LEFTPADDING', (0,0), (-1,-1), 2),
                ('RIGHTPADDING', (0,0), (-1,-1), 2),
                ('BOTTOMPADDING', (0,0), (-1,-1), 10),
            ]))
            story.append(t)

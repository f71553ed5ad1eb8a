"""
Export service for rendering validation reports as PDF
"""
import io
from typing import Any, Dict, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.logging_config import logger
from app.models import Analysis
from app.services.prompt_builder import CATEGORY_LABELS


class ExportService:
    """Renders a stored analysis and its report into a PDF document"""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            'ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=22,
            spaceAfter=20,
            textColor=colors.HexColor('#4f46e5')
        )

    def _text(self, value: Any) -> str:
        # Paragraph content is markup; model output must not be interpreted as tags
        return escape(str(value)) if value is not None else ''

    def _bullets(self, items: List[str]) -> List[Paragraph]:
        return [Paragraph(f"&bull; {self._text(item)}", self.styles['Normal']) for item in items]

    def _table(self, header: List[str], rows: List[List[Any]]) -> Table:
        body = [[Paragraph(self._text(cell), self.styles['BodyText']) for cell in row] for row in rows]
        table = Table([header] + body, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black)
        ]))
        return table

    def _scores_table(self, analysis: Analysis) -> Table:
        header = ['Category', 'Score']
        rows = [
            [label, f"{getattr(analysis, name).get('score', 0):g}"]
            for name, label in CATEGORY_LABELS.items()
        ]
        rows.append(['Overall', str(analysis.total_score)])
        return self._table(header, rows)

    def report_to_pdf(self, analysis: Analysis) -> bytes:
        """
        Export an analysis with its validation roadmap to PDF

        Args:
            analysis: Analysis whose report has been generated

        Returns:
            PDF content as bytes
        """
        report: Dict[str, Any] = analysis.report_data or {}
        heading = self.styles['Heading2']
        normal = self.styles['Normal']

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=letter, title="Validation Roadmap")
        story = []

        story.append(Paragraph(
            self._text(analysis.idea_name or "Validation Roadmap"), self.title_style
        ))
        story.append(Paragraph(
            f"<b>Score:</b> {analysis.total_score}/100 &nbsp; "
            f"<b>Status:</b> {self._text(analysis.validation_status)}",
            normal
        ))
        story.append(Spacer(1, 12))
        story.append(self._scores_table(analysis))
        story.append(Spacer(1, 20))

        strategy = report.get('validation_strategy', {})
        if strategy:
            story.append(Paragraph("Validation Strategy", heading))
            story.append(Paragraph(self._text(strategy.get('summary')), normal))
            story.append(Paragraph(f"<b>Timeline:</b> {self._text(strategy.get('timeline'))}", normal))
            story.extend(self._bullets(strategy.get('key_objectives', [])))
            story.append(Spacer(1, 12))

        customer = report.get('customer_validation', {})
        if customer:
            story.append(Paragraph("Customer Validation", heading))
            story.append(self._table(
                ['Segment', 'Characteristics', 'Where to find them'],
                [[s.get('segment'), s.get('characteristics'), s.get('finding_channels')]
                 for s in customer.get('target_segments', [])]
            ))
            story.append(Paragraph("<b>Interview questions</b>", normal))
            story.extend(self._bullets(customer.get('interview_questions', [])))
            story.append(Paragraph("<b>Success metrics</b>", normal))
            story.extend(self._bullets(customer.get('success_metrics', [])))
            story.append(Spacer(1, 12))

        solution = report.get('solution_validation', {})
        if solution:
            story.append(Paragraph("Solution Validation", heading))
            story.append(self._table(
                ['MVP feature', 'Purpose', 'Testing approach'],
                [[f.get('feature'), f.get('purpose'), f.get('testing_approach')]
                 for f in solution.get('mvp_features', [])]
            ))
            story.append(Spacer(1, 6))
            story.append(self._table(
                ['Method', 'Description', 'Expected outcome'],
                [[m.get('method'), m.get('description'), m.get('expected_outcome')]
                 for m in solution.get('testing_methods', [])]
            ))
            story.append(Spacer(1, 12))

        market = report.get('market_validation', {})
        if market:
            story.append(Paragraph("Market Validation", heading))
            story.append(self._table(
                ['Research area', 'Sources', 'Metrics'],
                [[a.get('area'), a.get('sources'), a.get('metrics')]
                 for a in market.get('market_research', [])]
            ))
            story.append(Spacer(1, 6))
            story.append(self._table(
                ['Competitor', 'Strengths', 'Weaknesses'],
                [[c.get('competitor'), c.get('strengths'), c.get('weaknesses')]
                 for c in market.get('competitor_analysis', [])]
            ))
            story.append(Spacer(1, 12))

        if report.get('risks'):
            story.append(Paragraph("Risks", heading))
            story.append(self._table(
                ['Risk', 'Impact', 'Mitigation'],
                [[r.get('risk'), r.get('impact'), r.get('mitigation_strategy')] for r in report['risks']]
            ))
            story.append(Spacer(1, 12))

        if report.get('critical_issues'):
            story.append(Paragraph("Critical Issues", heading))
            story.append(self._table(
                ['Issue', 'Impact', 'Recommendation'],
                [[i.get('issue'), i.get('impact'), i.get('recommendation')] for i in report['critical_issues']]
            ))
            story.append(Spacer(1, 12))

        if report.get('next_steps_report'):
            story.append(Paragraph("Next Steps", heading))
            story.append(self._table(
                ['Priority', 'Step', 'Details'],
                [[s.get('priority'), s.get('step'), s.get('details')] for s in report['next_steps_report']]
            ))

        doc.build(story)
        pdf_content = buffer.getvalue()
        buffer.close()

        logger.info("Exported report to PDF", extra={"analysis_id": analysis.id})
        return pdf_content

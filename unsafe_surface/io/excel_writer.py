"""集計結果のExcel出力モジュール。"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Sequence, Union
import logging

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from ..models.member import MemberSafetyRecord
from ..models.report import GroupMetrics, ReportTable

logger = logging.getLogger(__name__)


class ExcelReportWriter:
    """集計表とunsafeメンバー一覧をExcelファイルに書き込む。"""

    # 集計表の列ヘッダー
    GROUP_HEADERS = [
        "Assembly",
        "Total methods",
        "P/Invokes",
        "Methods with 'unsafe' context",
        "Methods with Unsafe API calls",
    ]

    # メンバー一覧の列ヘッダー
    MEMBER_HEADERS = [
        "File",
        "Kind",
        "Member",
        "Line",
        "P/Invoke",
        "'unsafe' context",
        "Unsafe API calls",
        "Unsafe parent",
    ]

    # 各フラグの色（RGB hex、#なし）
    FLAG_COLORS: Dict[str, str] = {
        "pinvoke": "FFEB9C",         # 黄 - ネイティブ呼び出し
        "unsafe_context": "FFC7CE",  # 赤 - ポインタ・unsafeブロック
        "unsafe_api": "F8CBAD",      # 橙 - Unsafe API
        "ancestor": "D9D9D9",        # 灰 - 外側のunsafe修飾子のみ
    }

    HEADER_FILL = "4472C4"

    def __init__(self, output_file: Union[str, Path]):
        """Excelライターを初期化する。

        Args:
            output_file: 出力Excelファイルのパス
        """
        self.output_file = Path(output_file)
        self._thin_border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin")
        )

    def write(self, table: ReportTable, records: Sequence[MemberSafetyRecord]) -> None:
        """集計表、メンバー一覧、サマリーの3シートを書き込む。

        Args:
            table: グループ別集計表
            records: 全分類結果
        """
        wb = Workbook()
        ws = wb.active
        ws.title = "Assemblies"
        self._write_group_sheet(ws, table)

        unsafe_records = [r for r in records if r.is_unsafe or (
            not r.can_be_ignored and r.has_unsafe_modifier_on_ancestor
        )]
        self._write_member_sheet(wb.create_sheet("Members"), unsafe_records)
        self._write_summary_sheet(wb.create_sheet("Summary"), records)

        wb.save(self.output_file)
        logger.info(
            f"Excel report written to {self.output_file} "
            f"({len(table.rows())} group rows, {len(unsafe_records)} members)"
        )

    def _add_headers(self, ws, headers: List[str]) -> None:
        """ヘッダー行を書き込む。

        Args:
            ws: ワークシートオブジェクト
            headers: 列ヘッダー
        """
        white_font = Font(bold=True, color="FFFFFF")
        header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        header_fill = PatternFill(
            start_color=self.HEADER_FILL,
            end_color=self.HEADER_FILL,
            fill_type="solid"
        )

        for i, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=i)
            cell.value = header
            cell.font = white_font
            cell.alignment = header_alignment
            cell.fill = header_fill
            cell.border = self._thin_border

    def _write_group_sheet(self, ws, table: ReportTable) -> None:
        """グループ別集計表を書き込む。

        Args:
            ws: ワークシートオブジェクト
            table: 集計表
        """
        self._add_headers(ws, self.GROUP_HEADERS)

        rows: List[GroupMetrics] = table.rows()
        for row_num, group in enumerate(rows, 2):
            is_total = group is table.total
            is_other = group is table.other

            cell_key = ws.cell(row=row_num, column=1)
            cell_key.value = group.key
            cell_key.border = self._thin_border
            if is_total:
                cell_key.font = Font(bold=True)
            elif is_other:
                cell_key.font = Font(italic=True)

            for col, value in enumerate(group.as_vector(), 2):
                cell = ws.cell(row=row_num, column=col)
                cell.value = value
                cell.alignment = Alignment(horizontal="right")
                cell.border = self._thin_border
                if is_total:
                    cell.font = Font(bold=True)

        # 列幅を調整
        ws.column_dimensions["A"].width = 40
        for letter in ("B", "C", "D", "E"):
            ws.column_dimensions[letter].width = 16
        ws.freeze_panes = "A2"

    def _write_member_sheet(self, ws, records: Sequence[MemberSafetyRecord]) -> None:
        """unsafeと判定されたメンバーの一覧を書き込む。

        Args:
            ws: ワークシートオブジェクト
            records: 出力するレコード
        """
        self._add_headers(ws, self.MEMBER_HEADERS)

        ordered = sorted(records, key=lambda r: (r.file, r.member.line, r.member.column))
        for row_num, record in enumerate(ordered, 2):
            values = [
                record.file,
                record.member.kind.value,
                record.member.name,
                record.member.line,
            ]
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row_num, column=col)
                cell.value = value
                cell.border = self._thin_border

            flags = [
                ("pinvoke", record.is_pinvoke),
                ("unsafe_context", record.has_unsafe_context),
                ("unsafe_api", record.has_unsafe_api_call),
                ("ancestor", record.has_unsafe_modifier_on_ancestor),
            ]
            for col, (flag, value) in enumerate(flags, len(values) + 1):
                cell = ws.cell(row=row_num, column=col)
                cell.value = "x" if value else ""
                cell.alignment = Alignment(horizontal="center")
                cell.border = self._thin_border
                if value:
                    cell.fill = PatternFill(
                        start_color=self.FLAG_COLORS[flag],
                        end_color=self.FLAG_COLORS[flag],
                        fill_type="solid"
                    )

        widths = [60, 16, 32, 8, 10, 16, 16, 14]
        for i, width in enumerate(widths, 1):
            col_letter = ws.cell(row=1, column=i).column_letter
            ws.column_dimensions[col_letter].width = width
        ws.freeze_panes = "A2"
        if ordered:
            ws.auto_filter.ref = ws.dimensions

    def _write_summary_sheet(self, ws, records: Sequence[MemberSafetyRecord]) -> None:
        """全体の件数サマリーを書き込む。

        Args:
            ws: ワークシートオブジェクト
            records: 全分類結果
        """
        counted = [r for r in records if not r.can_be_ignored]
        counts = [
            ("Trivial properties", sum(1 for r in records if r.can_be_ignored)),
            ("Methods", len(counted)),
            ("P/Invokes", sum(1 for r in counted if r.is_pinvoke)),
            ("Methods with 'unsafe' context", sum(1 for r in counted if r.has_unsafe_context)),
            ("Methods with Unsafe API calls", sum(1 for r in counted if r.has_unsafe_api_call)),
            ("Unsafe methods", sum(1 for r in counted if r.is_unsafe)),
            ("Methods with only an 'unsafe' parent", sum(
                1 for r in counted
                if r.has_unsafe_modifier_on_ancestor and not r.has_unsafe_context and not r.has_unsafe_api_call
            )),
        ]

        ws["A1"] = "Unsafe code summary"
        ws["A1"].font = Font(bold=True, size=14)
        ws.merge_cells("A1:B1")
        ws["A2"] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        ws.merge_cells("A2:B2")

        for row_num, (label, count) in enumerate(counts, 4):
            cell_label = ws.cell(row=row_num, column=1)
            cell_label.value = label
            cell_label.border = self._thin_border

            cell_count = ws.cell(row=row_num, column=2)
            cell_count.value = count
            cell_count.alignment = Alignment(horizontal="right")
            cell_count.border = self._thin_border

        ws.column_dimensions["A"].width = 40
        ws.column_dimensions["B"].width = 12

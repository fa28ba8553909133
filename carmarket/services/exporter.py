import io
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from carmarket.db.models import Car


STATUS_FILLS = {
    "AVAILABLE": "D5F5E3",
    "UNAVAILABLE": "FCF3CF",
    "SOLD": "FADBD8",
}


def export_cars_to_excel(cars: list[Car], stats: dict | None = None) -> io.BytesIO:
    """Write the car inventory to an .xlsx workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Inventory"

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="1F3A5F", end_color="1F3A5F", fill_type="solid")
    header_align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)

    headers = [
        "ID", "Year", "Make", "Model", "Price", "Mileage", "Color", "Body Type",
        "Fuel", "Transmission", "Status", "Featured", "Images", "First Image",
    ]

    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_align
        cell.border = border

    for row_idx, car in enumerate(cars, 2):
        ws.cell(row=row_idx, column=1, value=car.id)
        ws.cell(row=row_idx, column=2, value=car.year)
        ws.cell(row=row_idx, column=3, value=car.make)
        ws.cell(row=row_idx, column=4, value=car.model)
        price_cell = ws.cell(row=row_idx, column=5, value=float(car.price) if car.price is not None else None)
        price_cell.number_format = '#,##0.00'
        mileage_cell = ws.cell(row=row_idx, column=6, value=car.mileage)
        mileage_cell.number_format = '#,##0'
        ws.cell(row=row_idx, column=7, value=car.color)
        ws.cell(row=row_idx, column=8, value=car.body_type)
        ws.cell(row=row_idx, column=9, value=car.fuel_type)
        ws.cell(row=row_idx, column=10, value=car.transmission)

        status_cell = ws.cell(row=row_idx, column=11, value=car.status)
        color = STATUS_FILLS.get(car.status)
        if color:
            status_cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")

        ws.cell(row=row_idx, column=12, value="Yes" if car.featured else "No")
        images = car.images or []
        ws.cell(row=row_idx, column=13, value=len(images))
        if images:
            link_cell = ws.cell(row=row_idx, column=14, value="View Image")
            link_cell.hyperlink = images[0]
            link_cell.font = Font(color="0563C1", underline="single")

    col_widths = [38, 8, 14, 22, 14, 12, 12, 14, 12, 14, 14, 10, 9, 14]
    for i, width in enumerate(col_widths, 1):
        ws.column_dimensions[get_column_letter(i)].width = width

    if stats:
        ws_stats = wb.create_sheet("Statistics")
        ws_stats.cell(row=1, column=1, value="Metric").font = Font(bold=True)
        ws_stats.cell(row=1, column=2, value="Value").font = Font(bold=True)
        for i, (key, value) in enumerate(stats.items(), 2):
            ws_stats.cell(row=i, column=1, value=key.replace("_", " ").title())
            ws_stats.cell(row=i, column=2, value=value)
        ws_stats.column_dimensions["A"].width = 25
        ws_stats.column_dimensions["B"].width = 15

    ws.freeze_panes = "A2"
    ws.auto_filter.ref = f"A1:{get_column_letter(len(headers))}1"

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output

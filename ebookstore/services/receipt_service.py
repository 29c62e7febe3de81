from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from ebookstore.config import settings
from ebookstore.models.order import Order


def _brl(value: float) -> str:
    return f"R$ {value:.2f}"


def build_receipt_pdf(order: Order, coupon_code: str | None = None) -> bytes:
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    y = height - 60
    c.setFont("Helvetica-Bold", 20)
    c.drawString(50, y, settings.store_name)
    y -= 20
    c.setFont("Helvetica", 12)
    c.drawString(50, y, "Recibo de Compra")

    y -= 40
    c.setFont("Helvetica-Bold", 11)
    c.drawString(50, y, f"Pedido: #{order.short_id}")
    c.setFont("Helvetica", 10)
    date = order.paid_at or order.created_at
    y -= 18
    c.drawString(50, y, f"Data: {date.strftime('%d/%m/%Y')}")
    y -= 15
    c.drawString(50, y, f"Status: {order.status.value}")
    y -= 15
    c.drawString(50, y, f"Pagamento: {order.payment_method.value}")

    y -= 30
    c.setFont("Helvetica-Bold", 11)
    c.drawString(50, y, "Cliente")
    c.setFont("Helvetica", 10)
    y -= 18
    c.drawString(50, y, f"Nome: {order.customer_name or '-'}")
    y -= 15
    c.drawString(50, y, f"Email: {order.customer_email or '-'}")
    y -= 15
    c.drawString(50, y, f"CPF: {order.customer_cpf or '-'}")

    y -= 30
    c.setFont("Helvetica-Bold", 9)
    c.drawString(50, y, "Titulo")
    c.drawString(480, y, "Preco")
    c.line(50, y - 5, 545, y - 5)
    y -= 20

    c.setFont("Helvetica", 9)
    for item in order.items:
        title = item.ebook.title if item.ebook else f"E-book {item.ebook_id}"
        if len(title) > 60:
            title = title[:57] + "..."
        c.drawString(50, y, title)
        c.drawString(480, y, _brl(item.price))
        y -= 15

    c.line(50, y + 5, 545, y + 5)
    y -= 10

    if order.discount > 0:
        label = f"Desconto ({coupon_code}):" if coupon_code else "Desconto:"
        c.setFont("Helvetica", 10)
        c.drawString(380, y, label)
        c.drawString(480, y, f"-{_brl(order.discount)}")
        y -= 18

    c.setFont("Helvetica-Bold", 12)
    c.drawString(380, y, "Total:")
    c.drawString(480, y, _brl(order.total))

    y -= 60
    c.setFont("Helvetica", 8)
    c.drawString(50, y, "Documento gerado automaticamente.")

    c.showPage()
    c.save()
    return buffer.getvalue()

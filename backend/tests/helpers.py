from docledger.services.totals_service import LineInput, Freight

# Discount 1000.00 and freight 500.00 @18%
EXAMPLE_DISCOUNT = 100000
EXAMPLE_FREIGHT = Freight(amount_cents=50000, tax_rate_bps=1800)


def example_items(track_stock=False, product_ids=(None, None)):
    """Monitor 1 x 15000 @12% and Probe 2 x 1200 @18%."""
    return [
        LineInput(
            description="Patient Monitor",
            quantity=1,
            unit_price_cents=1500000,
            tax_rate_bps=1200,
            product_id=product_ids[0],
            track_stock=track_stock,
        ),
        LineInput(
            description="SpO2 Probe",
            quantity=2,
            unit_price_cents=120000,
            tax_rate_bps=1800,
            product_id=product_ids[1],
            track_stock=track_stock,
        ),
    ]


def stock_line(product, quantity, **kwargs):
    return LineInput(
        description=kwargs.pop("description", product.name),
        quantity=quantity,
        unit_price_cents=kwargs.pop("unit_price_cents", product.price_cents),
        tax_rate_bps=kwargs.pop("tax_rate_bps", product.tax_rate_bps),
        product_id=kwargs.pop("product_id", product.id),
        **kwargs,
    )

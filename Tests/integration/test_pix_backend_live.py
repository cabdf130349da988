import asyncio
import os

import pytest
import requests

from services.pix_harness.app.cli import run_checkout
from services.pix_harness.app.config import load_settings

BASE = os.getenv("PIX_HARNESS_BASE_URL", "http://localhost:3000")


def backend_available(url: str) -> bool:
    try:
        requests.get(url, timeout=2)
        return True
    except requests.RequestException:
        return False


@pytest.mark.integration
@pytest.mark.skipif(not backend_available(BASE), reason=f"backend não acessível em {BASE}")
def test_checkout_pix_contra_backend_real():
    """Requer o backend rodando (npm run start:dev) com MERCADO_PAGO_ACCESS_TOKEN de sandbox."""
    report = asyncio.run(run_checkout(load_settings()))
    assert report.exit_code == 0, report.to_dict()
    assert report.verdict in {"pending", "approved", "declined", "refunded"}

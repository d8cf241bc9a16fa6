import json


class FakeResponse:
    def __init__(self, status_code=200, payload=None, raw=None):
        self.status_code = status_code
        if raw is not None:
            self.content = raw
        else:
            self.content = json.dumps(payload if payload is not None else {}).encode("utf-8")

    def json(self):
        return json.loads(self.content.decode("utf-8"))


def api_row(id, amount_in=0, amount_out=0, content="", ref=None, bank="VietinBank"):
    return {
        "id": str(id),
        "bank_brand_name": bank,
        "account_number": "100872918542",
        "transaction_date": "2026-10-18 09:30:00",
        "amount_in": f"{amount_in:.2f}",
        "amount_out": f"{amount_out:.2f}",
        "accumulated": "0.00",
        "transaction_content": content,
        "reference_number": ref if ref is not None else f"FT{id}",
    }

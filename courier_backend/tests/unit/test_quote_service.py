import pytest

from app.core.exceptions import NotFoundError
from app.models.quote import Quote, QuoteStatus
from app.schemas.quote import QuoteCreate
from app.services.quote_service import QuoteService


@pytest.mark.asyncio
async def test_create_quote_prices_with_estimator(mock_db, sample_quote_payload):
    payload = {**sample_quote_payload, "packageDetails": {**sample_quote_payload["packageDetails"], "value": 1500}}

    quote = await QuoteService(mock_db).create_quote(QuoteCreate.model_validate(payload))

    added = mock_db.add.call_args[0][0]
    assert added is quote
    assert isinstance(quote, Quote)
    assert quote.status == QuoteStatus.PENDING
    assert quote.email == "carol@example.com"
    # 25 base + 30 insurance + 25 high-value handling
    assert quote.estimated_price == 80.0
    assert quote.package_details["value"] == 1500
    mock_db.commit.assert_awaited()


@pytest.mark.asyncio
async def test_get_missing_quote(mock_db):
    mock_db.get.return_value = None

    with pytest.raises(NotFoundError) as exc:
        await QuoteService(mock_db).get_quote(7)

    assert exc.value.message == "Quote not found"

import math

import pytest

from portfolio_valuer.domain.models import Equity
from portfolio_valuer.domain.results import NO_DIVIDEND, NON_CONVERGENT
from portfolio_valuer.domain.services import DividendDiscountValuator, valuate


def make_equity(dividend: float = 2.0, growth: float = 3.0, required_return: float = 10.0, price: float = 34.5) -> Equity:
    return Equity(
        id="eq-1",
        symbol="PTT",
        price=price,
        dividend=dividend,
        growth=growth,
        required_return=required_return,
    )


def test_worked_example():
    result = valuate(make_equity(), 200000)

    assert result.is_valid
    assert result.error_reason is None
    assert result.d1 == pytest.approx(2.06)
    assert result.ddm_price == pytest.approx(29.428571, rel=1e-6)
    assert result.mos30 == pytest.approx(20.60)
    assert result.mos40 == pytest.approx(17.657143, rel=1e-6)
    assert result.mos50 == pytest.approx(14.714286, rel=1e-6)
    assert result.yield_forecast == pytest.approx(2.06 / 34.5 * 100)
    assert result.max_shares30 == 9700
    assert result.max_shares40 == 11300
    assert result.max_shares50 == 13500


def test_growth_above_required_return_is_invalid_but_keeps_d1():
    result = valuate(make_equity(growth=10.0, required_return=8.0), 200000)

    assert not result.is_valid
    assert result.error_reason == NON_CONVERGENT
    assert result.ddm_price == 0
    assert result.d1 == pytest.approx(2.20)
    assert result.yield_forecast == pytest.approx(2.20 / 34.5 * 100)
    assert (result.mos30, result.mos40, result.mos50) == (0, 0, 0)
    assert (result.max_shares30, result.max_shares40, result.max_shares50) == (0, 0, 0)


def test_equal_growth_and_return_is_invalid():
    result = valuate(make_equity(growth=8.0, required_return=8.0), 100000)

    assert not result.is_valid
    assert result.error_reason == NON_CONVERGENT
    assert result.ddm_price == 0


@pytest.mark.parametrize("dividend", [0.0, -1.5])
@pytest.mark.parametrize("growth,required_return", [(3.0, 10.0), (12.0, 5.0), (-4.0, 0.0)])
def test_no_dividend_is_always_invalid(dividend, growth, required_return):
    result = valuate(make_equity(dividend=dividend, growth=growth, required_return=required_return), 50000)

    assert not result.is_valid
    assert result.error_reason == NO_DIVIDEND
    assert result.d1 == 0
    assert result.yield_forecast == 0
    assert result.ddm_price == 0


def test_missing_assumptions_treated_as_zero():
    equity = Equity(id="x", dividend=1.0, price=10.0, growth=None, required_return=None)  # type: ignore[arg-type]

    result = valuate(equity, 1000)

    assert not result.is_valid
    assert result.error_reason == NON_CONVERGENT
    assert result.d1 == pytest.approx(1.0)


def test_zero_price_gives_zero_forecast_yield():
    result = valuate(make_equity(price=0.0), 100000)

    assert result.is_valid
    assert result.yield_forecast == 0


def test_negative_growth_lowers_d1():
    result = valuate(make_equity(growth=-5.0), 100000)

    assert result.is_valid
    assert result.d1 == pytest.approx(1.9)
    assert result.ddm_price == pytest.approx(1.9 / 0.15)


@pytest.mark.parametrize(
    "dividend,growth,required_return,allocation",
    [
        (2.0, 3.0, 10.0, 200000),
        (0.35, 1.0, 7.5, 12345.67),
        (5.1, -2.0, 9.0, 1_000_000),
        (1.0, 0.0, 12.0, 99.0),
    ],
)
def test_mos_ordering_and_board_lots(dividend, growth, required_return, allocation):
    result = valuate(make_equity(dividend=dividend, growth=growth, required_return=required_return), allocation)

    assert result.is_valid
    assert result.mos50 <= result.mos40 <= result.mos30 <= result.ddm_price
    for _, tier_price, shares in result.tiers():
        assert shares % 100 == 0
        assert shares <= math.floor(allocation / tier_price)


def test_zero_allocation_buys_nothing():
    result = valuate(make_equity(), 0)

    assert result.is_valid
    assert result.max_shares30 == result.max_shares40 == result.max_shares50 == 0


def test_custom_board_lot():
    valuator = DividendDiscountValuator(board_lot=10)

    result = valuator.valuate(make_equity(), 200000)

    assert result.max_shares30 == 9700
    assert valuator.board_lot_shares(1000, 33.0) == 30


def test_rejects_bad_configuration():
    with pytest.raises(ValueError):
        DividendDiscountValuator(board_lot=0)
    with pytest.raises(ValueError):
        DividendDiscountValuator(multipliers=(0.7, 0.6))

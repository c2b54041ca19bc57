from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from matchbook.config import MarketConfig, STPMode
from matchbook.orders import (
    TIF,
    AdminCreateMarket,
    AdminHaltMarket,
    AdminResumeMarket,
    CancelOrder,
    Command,
    Fill,
    OrderFlags,
    OrderNode,
    OrderType,
    PlaceLimitOrder,
    PlaceMarketOrder,
    PlaceStopOrder,
    Side,
)


def _all_commands(market_id, order_id):
    return [
        PlaceLimitOrder(market_id=market_id, order_id=order_id, user_id="user1",
                        side=Side.BID, price=Decimal("100.00"), qty=Decimal("1"), tif=TIF.GTC),
        PlaceMarketOrder(market_id=market_id, order_id=order_id, user_id="user1",
                         side=Side.ASK, qty=Decimal("1"), tif=TIF.IOC),
        PlaceStopOrder(market_id=market_id, order_id=order_id, user_id="user1",
                       side=Side.ASK, trigger_price=Decimal("90.00"),
                       convert_to=OrderType.MARKET, qty=Decimal("1"), tif=TIF.GTC),
        CancelOrder(market_id=market_id, order_id=order_id, user_id="user1"),
        AdminHaltMarket(market_id=market_id, reason="test"),
        AdminResumeMarket(market_id=market_id),
    ]


def test_commands_interface_satisfaction():
    for cmd in _all_commands("BTC-USD", "order-1"):
        assert isinstance(cmd, Command)
        assert cmd.market_id == "BTC-USD"


def test_commands_field_roundtrip():
    cmd = PlaceLimitOrder(
        market_id="ETH-USD",
        order_id="order-42",
        user_id="alice",
        side=Side.BID,
        price=Decimal("2000.00"),
        qty=Decimal("5"),
        tif=TIF.GTC,
    )
    assert cmd.market_id == "ETH-USD"
    assert cmd.order_id == "order-42"
    assert cmd.user_id == "alice"
    assert cmd.display_qty == 0
    assert cmd.stp_mode == STPMode.DISABLED


def test_admin_commands_have_admin_user_and_no_order():
    cmds = [
        AdminCreateMarket(market_id="X", config=MarketConfig(market_id="X")),
        AdminHaltMarket(market_id="X", reason="maintenance"),
        AdminResumeMarket(market_id="X"),
    ]
    assert [c.user_id for c in cmds] == ["admin"] * 3
    assert [c.order_id for c in cmds] == [""] * 3
    assert cmds[0].config.market_id == "X"


def test_commands_are_immutable():
    cmd = CancelOrder(market_id="M", order_id="o", user_id="u")
    with pytest.raises(FrozenInstanceError):
        cmd.order_id = "other"
    assert cmd.order_id == "o"


def test_stop_order_defaults():
    cmd = PlaceStopOrder(market_id="M", order_id="o", user_id="u", side=Side.BID,
                         trigger_price=Decimal("95.00"), qty=Decimal("2"))
    assert cmd.limit_price == 0
    assert cmd.convert_to is OrderType.MARKET
    assert cmd.tif is TIF.GTC


def test_side_opposite():
    assert Side.BID.opposite() is Side.ASK
    assert Side.ASK.opposite() is Side.BID


@pytest.mark.parametrize(
    "tif, expected",
    [(TIF.GTC, True), (TIF.GTD, True), (TIF.IOC, False), (TIF.FOK, False)],
)
def test_tif_can_rest(tif, expected):
    assert tif.can_rest() is expected


def test_order_flags_membership():
    cmd = PlaceLimitOrder(
        market_id="M", order_id="o", user_id="u", side=Side.ASK,
        price=Decimal("100.00"), qty=Decimal("10"), tif=TIF.GTC,
        flags=OrderFlags.POST_ONLY | OrderFlags.ICEBERG,
    )
    assert OrderFlags.ICEBERG in cmd.flags
    assert OrderFlags.POST_ONLY in cmd.flags
    assert OrderFlags.REDUCE_ONLY not in cmd.flags


def test_order_node_starts_unlinked():
    node = OrderNode(order_id="A", remain_qty=Decimal("10"), display_qty=Decimal("10"))
    assert node.prev_node is None
    assert node.next_node is None
    assert node.level is None
    assert node.hidden_qty == 0
    assert node.remain_qty == Decimal("10")


def test_fill_level_fields_can_be_updated():
    fill = Fill(
        maker_order_id="m", taker_order_id="t", maker_user_id="a", taker_user_id="b",
        maker_side=Side.ASK, price=Decimal("100.00"), qty=Decimal("3"),
        maker_remain_qty=Decimal("7"), taker_remain_qty=Decimal("0"),
        maker_seq_num=1, taker_seq_num=2,
    )
    assert fill.maker_level_exists is False
    fill.maker_level_exists = True
    fill.maker_level_total_qty = Decimal("7")
    fill.timestamp = 123
    assert (fill.maker_level_exists, fill.maker_level_total_qty, fill.timestamp) == (
        True, Decimal("7"), 123)
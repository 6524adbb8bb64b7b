from pdcli.utils.ids import invalid_pagerduty_ids, put_body_for_set_attribute, split_dedup_and_flatten


def test_split_dedup_and_flatten():
    values = ["PAAAAAA,PBBBBBB", "PBBBBBB PCCCCCC\n", "", "PAAAAAA"]
    assert split_dedup_and_flatten(values) == ["PAAAAAA", "PBBBBBB", "PCCCCCC"]


def test_invalid_pagerduty_ids():
    assert invalid_pagerduty_ids(["PABC123", "Q1W2E3R4", "pabc123", "P12", "XABC123"]) == ["pabc123", "P12", "XABC123"]


def test_put_body_for_set_attribute():
    assert put_body_for_set_attribute("user", "PABC123", "time_zone", "Asia/Tokyo") == {
        "user": {"id": "PABC123", "type": "user_reference", "time_zone": "Asia/Tokyo"},
    }

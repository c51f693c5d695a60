from minemap.popup import format_popup, format_value, popup_html


def test_format_popup_ohio():
    props = {"State": "Ohio", "Mine_2009": 5}
    assert format_popup(props, "Mine_2009") == "State: Ohio\nNumber of mines in 2009: 5"


def test_format_popup_integral_float_and_missing():
    assert format_popup({"State": "Utah", "Mine_2011": 12.0}, "Mine_2011").endswith("2011: 12")
    assert format_popup({"State": "Utah"}, "Mine_2011").endswith("2011: n/a")


def test_format_value():
    assert format_value(3) == "3"
    assert format_value(2.5) == "2.5"
    assert format_value(float("nan")) == "n/a"
    assert format_value(None) == "n/a"


def test_popup_html_escapes():
    html_text = popup_html({"State": "<Ohio>", "Mine_2009": 5}, "Mine_2009")
    assert html_text == (
        "<p><b>State:</b> &lt;Ohio&gt;</p>"
        "<p><b>Number of mines in 2009:</b> 5</p>"
    )

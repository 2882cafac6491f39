from __future__ import annotations

import pytest

from pylocate.scanner import NmcliScanner, parse_nmcli_output, quality_to_dbm

_NMCLI_OUTPUT = "\n".join(
    [
        r"AA\:BB\:CC\:DD\:EE\:FF:home:6:80",
        r"11\:22\:33\:44\:55\:66::11:40",
        r"22\:33\:44\:55\:66\:77:guest\:5G:36:100",
        r"not-a-bssid:oops:1:50",
        "garbage line",
        "",
    ]
)


@pytest.mark.parametrize(("quality", "dbm"), [(0, -100), (40, -80), (80, -60), (100, -50), (150, -50), (-5, -100)])
def test_quality_to_dbm(quality: int, dbm: int) -> None:
    assert quality_to_dbm(quality) == dbm


def test_parse_nmcli_output() -> None:
    observations = parse_nmcli_output(_NMCLI_OUTPUT)

    assert [obs.bssid for obs in observations] == ["aabbccddeeff", "112233445566", "223344556677"]
    first, hidden, escaped = observations
    assert (first.ssid, first.channel, first.rssi) == ("home", 6, -60)
    assert hidden.ssid is None
    assert hidden.rssi == -80
    assert escaped.ssid == "guest:5G"


def test_nmcli_command() -> None:
    assert NmcliScanner(interface="wlan0", rescan=False).command() == [
        "nmcli",
        "-t",
        "-f",
        "BSSID,SSID,CHAN,SIGNAL",
        "device",
        "wifi",
        "list",
        "ifname",
        "wlan0",
        "--rescan",
        "no",
    ]

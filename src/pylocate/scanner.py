"""WiFi scan primitives for the device node."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Protocol

from pydantic import ValidationError

from pylocate._normalize import safe_int
from pylocate.exceptions import LocatorError
from pylocate.models.network import NetworkObservation

_logger = logging.getLogger(__name__)

# nmcli terse mode escapes ':' inside values as '\:'.
_TERSE_SPLIT = re.compile(r"(?<!\\):")


class WifiScanner(Protocol):
    """Structural interface for a platform WiFi scan."""

    async def scan(self) -> list[NetworkObservation]:
        ...


def quality_to_dbm(quality: int) -> int:
    """Convert NetworkManager's 0-100 signal quality to approximate dBm."""
    quality = max(0, min(100, quality))
    return quality // 2 - 100


def parse_nmcli_output(text: str) -> list[NetworkObservation]:
    """Parse ``nmcli -t -f BSSID,SSID,CHAN,SIGNAL device wifi list`` output.

    Lines that do not describe a valid access point are skipped.
    """
    observations: list[NetworkObservation] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        fields = [part.replace("\\:", ":") for part in _TERSE_SPLIT.split(line)]
        if len(fields) != 4:
            _logger.debug("Skipping nmcli line with %d fields: %r", len(fields), line)
            continue
        bssid, ssid, channel, signal = fields
        quality = safe_int(signal)
        if quality is None:
            continue
        try:
            observations.append(
                NetworkObservation(
                    bssid=bssid,
                    rssi=quality_to_dbm(quality),
                    ssid=ssid or None,
                    channel=channel,
                )
            )
        except ValidationError:
            _logger.debug("Skipping nmcli line with invalid BSSID: %r", line)
    return observations


class NmcliScanner:
    """Scan with NetworkManager's ``nmcli`` command-line tool.

    Parameters
    ----------
    interface : str or None
        Restrict the scan to one interface (``ifname``).
    rescan : bool
        Ask NetworkManager for a fresh scan instead of its cached list.
    nmcli : str
        Path to the ``nmcli`` binary.
    timeout : float
        Seconds to wait for the command.
    """

    def __init__(
        self,
        *,
        interface: str | None = None,
        rescan: bool = True,
        nmcli: str = "nmcli",
        timeout: float = 20.0,
    ) -> None:
        self._interface = interface
        self._rescan = rescan
        self._nmcli = nmcli
        self._timeout = timeout

    def command(self) -> list[str]:
        args = [self._nmcli, "-t", "-f", "BSSID,SSID,CHAN,SIGNAL", "device", "wifi", "list"]
        if self._interface:
            args += ["ifname", self._interface]
        args += ["--rescan", "yes" if self._rescan else "no"]
        return args

    async def scan(self) -> list[NetworkObservation]:
        """Run ``nmcli`` and return the visible access points.

        Raises
        ------
        LocatorError
            If ``nmcli`` is missing, times out or exits non-zero.
        """
        args = self.command()
        _logger.debug("Running %s", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise LocatorError(f"cannot run {self._nmcli}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self._timeout)
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise LocatorError(f"{self._nmcli} scan timed out after {self._timeout}s") from exc

        if proc.returncode != 0:
            raise LocatorError(
                f"{self._nmcli} exited with {proc.returncode}: {stderr.decode(errors='replace').strip()[:200]}"
            )
        observations = parse_nmcli_output(stdout.decode(errors="replace"))
        _logger.debug("nmcli scan found %d access points", len(observations))
        return observations

import json
import re
import tempfile
import unittest
from pathlib import Path
from unittest import mock
import sys

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_DIR = TESTS_DIR.parent
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from dead_ledger import DeadLedger
import fix_broken
from fix_broken import fix_broken_entries
from m3u_codec import ChannelEntry
from playlist_constants import BROKEN_URL
from stream_probe import Liveness, ProbeResult


def entry(tvg_id, name, url):
    return ChannelEntry(extinf=f'#EXTINF:-1 tvg-id="{tvg_id}",{name}', url=url)


def fake_probe(verdicts):
    def probe(url, **_kwargs):
        return ProbeResult(url=url, liveness=verdicts[url], detail="test", elapsed_seconds=0.0)

    return mock.Mock(side_effect=probe)


class FixBrokenTests(unittest.TestCase):
    def test_dead_url_is_parked_and_recorded(self):
        entries = [entry("CCTV1.cn", "CCTV-1", "http://gone/404")]
        ledger = DeadLedger()
        probe = fake_probe({"http://gone/404": Liveness.DEAD})

        report = fix_broken_entries(entries, ledger, probe=probe, workers=2)

        self.assertEqual(BROKEN_URL, entries[0].url)
        self.assertEqual("http://gone/404", ledger.recorded_dead("CCTV1.cn"))
        self.assertEqual(1, report.dead)

    def test_tagged_entry_is_never_probed(self):
        entries = [entry("CCTV5.cn", "CCTV-5 [Geo-blocked]", "http://geo/5")]
        ledger = DeadLedger({"other": "http://x/"})
        probe = fake_probe({})

        report = fix_broken_entries(entries, ledger, probe=probe)

        probe.assert_not_called()
        self.assertEqual("http://geo/5", entries[0].url)
        self.assertEqual({"other": "http://x/"}, ledger.as_dict())
        self.assertEqual(1, report.skipped)

    def test_placeholder_is_never_probed(self):
        entries = [entry("CCTV2.cn", "CCTV-2", BROKEN_URL)]
        probe = fake_probe({})

        report = fix_broken_entries(entries, DeadLedger(), probe=probe)

        probe.assert_not_called()
        self.assertEqual(1, report.skipped)

    def test_unknown_keeps_url_and_counts_as_alive(self):
        entries = [entry("CCTV3.cn", "CCTV-3", "http://slow/3")]
        ledger = DeadLedger({"CCTV3.cn": "http://older/3"})
        probe = fake_probe({"http://slow/3": Liveness.UNKNOWN})

        report = fix_broken_entries(entries, ledger, probe=probe)

        self.assertEqual("http://slow/3", entries[0].url)
        self.assertIsNone(ledger.recorded_dead("CCTV3.cn"))
        self.assertEqual(["CCTV3.cn"], report.recovered)
        self.assertEqual(1, report.unknown)

    def test_alive_url_clears_old_record(self):
        entries = [entry("CCTV4.cn", "CCTV-4", "http://back/4")]
        ledger = DeadLedger({"CCTV4.cn": "http://back/4"})
        probe = fake_probe({"http://back/4": Liveness.ALIVE})

        report = fix_broken_entries(entries, ledger, probe=probe)

        self.assertEqual(0, len(ledger))
        self.assertEqual(["CCTV4.cn"], report.recovered)
        self.assertEqual(1, report.alive)

    def test_many_entries_each_get_their_own_verdict(self):
        verdicts = {}
        entries = []
        for idx in range(40):
            url = f"http://host/{idx}"
            verdicts[url] = Liveness.DEAD if idx % 3 == 0 else Liveness.ALIVE
            entries.append(entry(f"CH{idx}.cn", f"Channel {idx}", url))
        ledger = DeadLedger()

        report = fix_broken_entries(entries, ledger, probe=fake_probe(verdicts), workers=8)

        dead_ids = {f"CH{idx}.cn" for idx in range(40) if idx % 3 == 0}
        self.assertEqual(len(dead_ids), report.dead)
        self.assertEqual(40 - len(dead_ids), report.alive)
        self.assertEqual(dead_ids, set(ledger.as_dict()))
        for idx, item in enumerate(entries):
            expected = BROKEN_URL if idx % 3 == 0 else f"http://host/{idx}"
            self.assertEqual(expected, item.url)
            self.assertEqual(f'#EXTINF:-1 tvg-id="CH{idx}.cn",Channel {idx}', item.extinf)

    def test_dead_entry_without_id_is_parked_but_not_recorded(self):
        entries = [ChannelEntry(extinf="#EXTINF:-1,Local", url="http://gone/x")]
        ledger = DeadLedger()

        fix_broken_entries(entries, ledger, probe=fake_probe({"http://gone/x": Liveness.DEAD}))

        self.assertEqual(BROKEN_URL, entries[0].url)
        self.assertEqual(0, len(ledger))

    def test_entries_sharing_a_url_are_probed_once(self):
        entries = [
            entry("CCTV11.cn", "CCTV-11", "http://shared/x"),
            entry("CCTV12.cn", "CCTV-12", "http://shared/x"),
        ]
        ledger = DeadLedger()
        probe = fake_probe({"http://shared/x": Liveness.DEAD})

        report = fix_broken_entries(entries, ledger, probe=probe)

        probe.assert_called_once_with("http://shared/x")
        self.assertEqual(2, report.dead)
        self.assertEqual([BROKEN_URL, BROKEN_URL], [item.url for item in entries])
        self.assertEqual({"CCTV11.cn", "CCTV12.cn"}, set(ledger.as_dict()))

    def test_custom_skip_patterns_are_honoured(self):
        entries = [
            entry("A.cn", "频道A [回看]", "http://a/"),
            entry("B.cn", "频道B", "http://b/"),
        ]
        probe = fake_probe({"http://b/": Liveness.ALIVE})

        report = fix_broken_entries(entries, DeadLedger(), probe=probe, skip_patterns=[re.compile("回看")])

        probe.assert_called_once_with("http://b/")
        self.assertEqual(1, report.skipped)
        self.assertEqual(1, report.tested)


class FixBrokenCliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.playlist = root / "china.m3u"
        self.dead_record = root / "china.dead.json"
        self.playlist.write_text(
            "#EXTM3U\n"
            '#EXTINF:-1 tvg-id="CCTV1.cn",CCTV-1\n'
            "http://gone/404\n"
            '#EXTINF:-1 tvg-id="CCTV2.cn",CCTV-2 [回看]\n'
            "http://replay/2\n",
            encoding="utf-8",
        )

    def tearDown(self):
        self._tmp.cleanup()

    def test_main_parks_dead_urls_and_writes_ledger(self):
        argv = [
            "fix_broken.py",
            "--playlist",
            str(self.playlist),
            "--dead-record",
            str(self.dead_record),
            "--skip-label",
            "回看",
        ]
        probe = fake_probe({"http://gone/404": Liveness.DEAD})
        with mock.patch("sys.argv", argv), mock.patch("fix_broken.probe_url", probe):
            self.assertEqual(0, fix_broken.main())

        probe.assert_called_once()
        self.assertEqual(
            "#EXTM3U\n"
            '#EXTINF:-1 tvg-id="CCTV1.cn",CCTV-1\n'
            f"{BROKEN_URL}\n"
            '#EXTINF:-1 tvg-id="CCTV2.cn",CCTV-2 [回看]\n'
            "http://replay/2\n",
            self.playlist.read_text(encoding="utf-8"),
        )
        self.assertEqual(
            {"CCTV1.cn": "http://gone/404"},
            json.loads(self.dead_record.read_text(encoding="utf-8")),
        )

    def test_missing_playlist_is_fatal(self):
        self.playlist.unlink()
        argv = ["fix_broken.py", "--playlist", str(self.playlist), "--dead-record", str(self.dead_record)]
        with mock.patch("sys.argv", argv):
            self.assertEqual(1, fix_broken.main())
        self.assertFalse(self.dead_record.exists())


if __name__ == "__main__":
    unittest.main()

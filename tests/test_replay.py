import io
import os
import tempfile
import unittest

from cache import Cache, Outcome, SimulationContext
from replay import Op, TraceError, TraceRecord, TraceReplayer, parse_line, read_trace, write_trace

YI_TRACE = [
    " L 10,1\n",
    " M 20,1\n",
    " L 22,1\n",
    " S 18,1\n",
    " L 110,1\n",
    " L 210,1\n",
    " M 12,1\n",
]


def make_replayer(s, E, b, verbose=False):
    ctx = SimulationContext()
    out = io.StringIO()
    return TraceReplayer(Cache(s, E), ctx, b, verbose=verbose, out=out), ctx, out


class TestParseLine(unittest.TestCase):

    def test_recognized_shapes(self):
        self.assertEqual(parse_line("L 7ff000,8"), TraceRecord(Op.LOAD, 0x7ff000, 8))
        self.assertEqual(parse_line(" M 10,1\n"), TraceRecord(Op.MODIFY, 0x10, 1))
        self.assertEqual(parse_line("\tS 20,4"), TraceRecord(Op.STORE, 0x20, 4))
        self.assertEqual(parse_line("I 400000,5"), TraceRecord(Op.INSTRUCTION, 0x400000, 5))
        self.assertEqual(parse_line(" L 0x1F,2"), TraceRecord(Op.LOAD, 0x1f, 2))

    def test_malformed(self):
        for line in ["", "\n", "garbage", "L", "L 10", "L zz,1", "X 10,1", "L 10,", "==1234== header"]:
            self.assertIsNone(parse_line(line), line)

    def test_to_line(self):
        self.assertEqual(TraceRecord(Op.MODIFY, 0x7ff0, 4).to_line(), "M 7ff0,4")


class TestReplayer(unittest.TestCase):

    def test_yi_trace_counters(self):
        replayer, ctx, _ = make_replayer(4, 1, 4)
        replayer.replay(YI_TRACE)
        self.assertEqual((ctx.hit_count, ctx.miss_count, ctx.eviction_count), (4, 5, 3))

    def test_yi_trace_verbose(self):
        replayer, _, out = make_replayer(4, 1, 4, verbose=True)
        replayer.replay(YI_TRACE)
        self.assertEqual(out.getvalue().splitlines(), [
            "L 10,1 miss",
            "M 20,1 miss hit",
            "L 22,1 hit",
            "S 18,1 hit",
            "L 110,1 miss eviction",
            "L 210,1 miss eviction",
            "M 12,1 miss eviction hit",
        ])

    def test_single_line_scenario(self):
        replayer, ctx, out = make_replayer(0, 1, 0, verbose=True)
        replayer.replay(["L 0,1", "L 1,1", "L 0,1"])
        self.assertEqual((ctx.hit_count, ctx.miss_count, ctx.eviction_count), (0, 3, 2))
        self.assertEqual(out.getvalue().splitlines(), ["L 0,1 miss", "L 1,1 miss eviction", "L 0,1 miss eviction"])

    def test_modify_is_two_accesses(self):
        replayer, ctx, _ = make_replayer(1, 2, 2)
        outcomes = replayer.replay_record(TraceRecord(Op.MODIFY, 0, 1))
        self.assertEqual(outcomes, [Outcome.MISS, Outcome.HIT])
        self.assertEqual((ctx.hit_count, ctx.miss_count, ctx.eviction_count), (1, 1, 0))

    def test_modify_resident_is_hit_hit(self):
        replayer, _, _ = make_replayer(1, 2, 2)
        replayer.replay_record(TraceRecord(Op.LOAD, 0x8, 1))
        self.assertEqual(replayer.replay_record(TraceRecord(Op.MODIFY, 0x8, 1)), [Outcome.HIT, Outcome.HIT])

    def test_modify_in_full_set_evicts_then_hits(self):
        replayer, _, _ = make_replayer(0, 2, 0)
        replayer.replay(["L 1,1", "L 2,1"])
        self.assertEqual(replayer.replay_record(TraceRecord(Op.MODIFY, 3, 1)), [Outcome.MISS_EVICTION, Outcome.HIT])

    def test_instructions_and_malformed_lines_are_silent(self):
        replayer, ctx, out = make_replayer(2, 2, 2, verbose=True)
        replayer.replay(["I 400000,5\n", "not a record\n", "\n", "X 10,1\n", " L 10,1\n"])
        self.assertEqual(out.getvalue(), "L 10,1 miss\n")
        self.assertEqual(ctx.clock, 1)
        self.assertEqual((ctx.hit_count, ctx.miss_count, ctx.eviction_count), (0, 1, 0))
        # blank lines are not counted as skipped
        self.assertEqual(ctx.skipped_count, 2)

    def test_access_count_matches_records(self):
        lines = ["L 0,1", "S 40,1", "M 80,2", "I 0,4", "M 0,1", "bad", "S 1000,8"]
        replayer, ctx, _ = make_replayer(2, 2, 4)
        replayer.replay(lines)
        self.assertEqual(ctx.hit_count + ctx.miss_count, 3 + 2 * 2)
        self.assertLessEqual(ctx.eviction_count, ctx.miss_count)

    def test_fresh_runs_are_identical(self):
        results = []
        for _ in range(2):
            replayer, ctx, _ = make_replayer(1, 2, 3)
            replayer.replay(YI_TRACE * 3)
            results.append((ctx.hit_count, ctx.miss_count, ctx.eviction_count))
        self.assertEqual(results[0], results[1])


class TestTraceFiles(unittest.TestCase):

    def test_missing_file(self):
        replayer, _, _ = make_replayer(1, 1, 1)
        with self.assertRaises(TraceError):
            replayer.replay_file(os.path.join(tempfile.gettempdir(), "no", "such", "file.trace"))

    def test_write_and_read(self):
        records = [TraceRecord(Op.LOAD, 0x10, 1), TraceRecord(Op.MODIFY, 0x20, 4)]
        with tempfile.TemporaryDirectory() as tmp:
            path = write_trace(records, os.path.join(tmp, "t.trace"))
            self.assertEqual([parse_line(line) for line in read_trace(path)], records)
            replayer, ctx, _ = make_replayer(4, 1, 4)
            replayer.replay_file(path)
        self.assertEqual((ctx.hit_count, ctx.miss_count), (1, 2))


if __name__ == '__main__':
    unittest.main()

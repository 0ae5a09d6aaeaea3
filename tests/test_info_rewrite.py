import unittest

from bt_sync.bluetooth.linux import find_display_name, read_ltk, rewrite_info
from bt_sync.bluetooth.windows import BtDeviceInfo

INFO = """[General]
Name=Basilisk X HyperSpeed
Appearance=0x03c2
AddressType=static
SupportedTechnologies=LE;
Trusted=true
Blocked=false

[IdentityResolvingKey]
Key=00000000000000000000000000000000

[LongTermKey]
Key=AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA
Authenticated=0
EncSize=16
EDiv=1
Rand=2

[LinkKey]
Key=BBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB
Type=4

[ConnectionParameters]
MinInterval=6
MaxInterval=6
"""

RECORD = BtDeviceInfo(
    mac="00:11:22:33:44:55",
    ltk="0123456789ABCDEF0123456789ABCDEF",
    erand="1311768467463790320",
    ediv="4660",
)


class RewriteInfoTests(unittest.TestCase):
    def test_only_long_term_key_fields_change(self):
        updated = rewrite_info(INFO, RECORD)

        old_lines = INFO.splitlines()
        new_lines = updated.splitlines()
        self.assertEqual(len(old_lines), len(new_lines))

        changed = {
            (old, new) for old, new in zip(old_lines, new_lines) if old != new
        }
        self.assertEqual(
            changed,
            {
                ("Key=AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA", "Key=0123456789ABCDEF0123456789ABCDEF"),
                ("EDiv=1", "EDiv=4660"),
                ("Rand=2", "Rand=1311768467463790320"),
            },
        )

    def test_keys_in_other_sections_are_untouched(self):
        updated = rewrite_info(INFO, RECORD)
        self.assertIn("[LinkKey]\nKey=BBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB\n", updated)
        self.assertIn("[IdentityResolvingKey]\nKey=00000000000000000000000000000000\n", updated)

    def test_rewrite_is_idempotent(self):
        once = rewrite_info(INFO, RECORD)
        self.assertEqual(rewrite_info(once, RECORD), once)

    def test_trailing_newline_is_preserved(self):
        self.assertTrue(rewrite_info(INFO, RECORD).endswith("MaxInterval=6\n"))
        without = INFO.rstrip("\n")
        self.assertTrue(rewrite_info(without, RECORD).endswith("MaxInterval=6"))

    def test_crlf_line_endings_are_preserved(self):
        content = INFO.replace("\n", "\r\n")
        updated = rewrite_info(content, RECORD)
        self.assertIn("EDiv=4660\r\n", updated)
        self.assertEqual(updated.count("\r\n"), content.count("\r\n"))

    def test_long_term_key_as_last_section(self):
        content = "[General]\nName=Pen\n[LongTermKey]\nKey=00\nRand=0\nEDiv=0"
        updated = rewrite_info(content, RECORD)
        self.assertEqual(
            updated,
            "[General]\nName=Pen\n[LongTermKey]\n"
            "Key=0123456789ABCDEF0123456789ABCDEF\nRand=1311768467463790320\nEDiv=4660",
        )

    def test_only_newline_ends_a_line(self):
        for separator in ("\x0b", "\x0c", "\x1c", "\x85", " "):
            with self.subTest(separator=repr(separator)):
                content = f"[LongTermKey]\nKey=AA{separator}BB\nRand=0\n"
                self.assertEqual(
                    rewrite_info(content, RECORD),
                    "[LongTermKey]\nKey=0123456789ABCDEF0123456789ABCDEF\n"
                    "Rand=1311768467463790320\n",
                )

    def test_form_feed_outside_section_is_kept(self):
        content = "[General]\nName=Pen\x0cPro\n[LongTermKey]\nEDiv=0\n"
        updated = rewrite_info(content, RECORD)
        self.assertEqual(updated, "[General]\nName=Pen\x0cPro\n[LongTermKey]\nEDiv=4660\n")
        self.assertEqual(find_display_name(content), "Pen\x0cPro")

    def test_trailing_carriage_return_is_kept(self):
        self.assertEqual(rewrite_info("[LongTermKey]\nEDiv=0\r", RECORD), "[LongTermKey]\nEDiv=4660\r")

    def test_missing_section_leaves_content_unchanged(self):
        content = "[General]\nName=Pen\n[LinkKey]\nKey=11\n"
        self.assertEqual(rewrite_info(content, RECORD), content)

    def test_absent_fields_are_not_added(self):
        content = "[LongTermKey]\nKey=00\n"
        self.assertEqual(
            rewrite_info(content, RECORD),
            "[LongTermKey]\nKey=0123456789ABCDEF0123456789ABCDEF\n",
        )


class InfoLookupTests(unittest.TestCase):
    def test_find_display_name(self):
        self.assertEqual(find_display_name(INFO), "Basilisk X HyperSpeed")

    def test_find_display_name_missing(self):
        self.assertIsNone(find_display_name("[General]\nAlias=Pen\n"))

    def test_find_display_name_ignores_carriage_return(self):
        self.assertEqual(find_display_name("[General]\r\nName=Pen\r\n"), "Pen")

    def test_find_display_name_is_exact(self):
        self.assertEqual(find_display_name("Name= Pen \n"), " Pen ")

    def test_read_ltk(self):
        self.assertEqual(read_ltk(INFO), "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA")
        self.assertEqual(read_ltk("[LinkKey]\nKey=11\n"), "")


if __name__ == "__main__":
    unittest.main()

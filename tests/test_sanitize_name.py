import re
import unittest

from find_steam_ids import sanitize_name


class TestSanitizeName(unittest.TestCase):
    """
    Tests the sanitize_name function.
    """

    def test_witcher_example(self) -> None:
        """
        Checks that the colon and the space after it collapse into one underscore.
        """
        computed: str = sanitize_name('The Witcher 3: Wild Hunt')
        expected: str = 'The_Witcher_3_Wild_Hunt'
        self.assertEqual(computed, expected)

    def test_keeps_hyphens_and_digits(self) -> None:
        computed: str = sanitize_name('Half-Life 2')
        expected: str = 'Half-Life_2'
        self.assertEqual(computed, expected)

    def test_strips_edge_underscores(self) -> None:
        """
        Checks that leading/trailing punctuation and spaces don't leave edge underscores.
        """
        computed: str = sanitize_name('  "Portal" (2007)!  ')
        expected: str = 'Portal_2007'
        self.assertEqual(computed, expected)

    def test_non_ascii_letters_are_replaced(self) -> None:
        computed: str = sanitize_name('Pokémon™ Café')
        expected: str = 'Pok_mon_Caf'
        self.assertEqual(computed, expected)

    def test_only_punctuation_gives_empty_key(self) -> None:
        self.assertEqual(sanitize_name('???'), '')

    def test_output_invariants_hold(self) -> None:
        """
        Checks allowed characters, no edge underscores, no adjacent space/underscore, and determinism.
        """
        samples: list[str] = [
            'The Witcher 3: Wild Hunt',
            '__already__sanitized__',
            'tabs\tand\nnewlines',
            'S.T.A.L.K.E.R.: Shadow of Chernobyl',
            'Baldur\'s Gate 3',
            'a _ b __ c   d',
            '日本語のゲーム',
            '-- dashes --',
            '',
        ]
        for sample in samples:
            with self.subTest(sample=sample):
                computed: str = sanitize_name(sample)
                self.assertIsNotNone(re.fullmatch(r'[A-Za-z0-9 _-]*', computed))
                self.assertFalse(computed.startswith('_'))
                self.assertFalse(computed.endswith('_'))
                self.assertIsNone(re.search(r'[ _]{2}', computed))
                self.assertEqual(computed, sanitize_name(sample))
                self.assertEqual(sanitize_name(computed), computed)


if __name__ == '__main__':
    unittest.main()

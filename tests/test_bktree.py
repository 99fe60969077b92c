"""Tests for the BK-tree."""

from rapidfuzz.distance import Levenshtein

from medvocab.vocabulary.bktree import BKTree


class TestBKTree:
    """Tests for BKTree construction and search."""

    def test_empty_tree(self):
        """Test searching an empty tree."""
        tree = BKTree()
        assert len(tree) == 0
        assert tree.find_within("anything", 2) == []

    def test_exact_hit(self):
        """Test distance 0 finds the item itself."""
        tree = BKTree(["metformin", "lisinopril"])
        assert tree.find_within("metformin", 0) == [(0, "metformin")]

    def test_within_distance(self):
        """Test bounded search returns only close items."""
        tree = BKTree(["metformin", "lisinopril", "amlodipine"])
        assert tree.find_within("metfromin", 2) == [(2, "metformin")]
        assert tree.find_within("metfromin", 1) == []

    def test_results_sorted_by_distance_then_item(self):
        """Test ordering is stable regardless of insertion order."""
        words = ["cart", "card", "care", "cat", "dog"]
        forward = BKTree(words).find_within("car", 1)
        backward = BKTree(reversed(words)).find_within("car", 1)

        assert forward == [(1, "card"), (1, "care"), (1, "cart"), (1, "cat")]
        assert forward == backward

    def test_duplicates_ignored(self):
        """Test inserting an existing item is a no-op."""
        tree = BKTree(["ramipril", "ramipril"])
        tree.insert("ramipril")
        assert len(tree) == 1

    def test_contains(self):
        """Test membership."""
        tree = BKTree(["ramipril"])
        assert "ramipril" in tree
        assert "ramapril" not in tree
        assert 42 not in tree

    def test_matches_brute_force(self):
        """Test pruning never loses a result."""
        words = [
            "metformin", "metoprolol", "methotrexate", "lisinopril", "losartan",
            "amlodipine", "amiodarone", "atorvastatin", "rosuvastatin", "ramipril",
        ]
        tree = BKTree(words)

        for query in ["metforman", "ramapril", "losarten", "statin", "amlo"]:
            for max_distance in range(4):
                expected = sorted(
                    (Levenshtein.distance(query, w), w)
                    for w in words
                    if Levenshtein.distance(query, w) <= max_distance
                )
                assert tree.find_within(query, max_distance) == expected

    def test_custom_metric(self):
        """Test a caller-supplied distance function."""
        tree = BKTree(["aa", "aaaa"], distance=lambda a, b: abs(len(a) - len(b)))
        assert tree.find_within("aaa", 1) == [(1, "aa"), (1, "aaaa")]

    def test_default_metric_is_levenshtein(self):
        """Test substitutions cost one and adjacent swaps cost two."""
        tree = BKTree(["cough", "metformin"])
        assert tree.find_within("couch", 1) == [(1, "cough")]
        assert tree.find_within("metfromin", 2) == [(2, "metformin")]
        assert tree.find_within("metfromin", 1) == []

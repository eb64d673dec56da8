"""Tests for backup code generation and verification."""

from __future__ import annotations

import pytest

from crm_security.config import BackupCodeConfig
from crm_security.mfa.backup_codes import BackupCodeManager


@pytest.fixture
def manager() -> BackupCodeManager:
    return BackupCodeManager()


class TestGenerate:
    def test_default_set(self, manager: BackupCodeManager) -> None:
        codes = manager.generate()

        assert len(codes) == 10
        assert all(len(code) == 8 for code in codes)
        assert all(set(code) <= set(BackupCodeManager.ALPHABET) for code in codes)

    def test_alphabet_excludes_ambiguous_characters(self) -> None:
        for char in "0O1I":
            assert char not in BackupCodeManager.ALPHABET

    def test_custom_count_and_length(self, manager: BackupCodeManager) -> None:
        codes = manager.generate(count=3, code_length=12)

        assert len(codes) == 3
        assert all(len(code) == 12 for code in codes)

    def test_configured_defaults(self) -> None:
        codes = BackupCodeManager(BackupCodeConfig(count=4, code_length=6)).generate()

        assert [len(code) for code in codes] == [6, 6, 6, 6]

    def test_sets_differ(self, manager: BackupCodeManager) -> None:
        assert manager.generate() != manager.generate()

    def test_invalid_length_rejected(self, manager: BackupCodeManager) -> None:
        with pytest.raises(ValueError):
            manager.generate(code_length=0)


class TestVerify:
    CODES = ("AB12CD34", "EF56GH78")

    def test_match_removes_code(self, manager: BackupCodeManager) -> None:
        result = manager.verify("AB12CD34", self.CODES)

        assert result.is_valid
        assert result.remaining_codes == ("EF56GH78",)

    def test_miss_leaves_set_unchanged(self, manager: BackupCodeManager) -> None:
        result = manager.verify("ZZZZZZZZ", self.CODES)

        assert not result.is_valid
        assert result.remaining_codes == self.CODES

    def test_same_code_twice_succeeds_once(self, manager: BackupCodeManager) -> None:
        first = manager.verify("AB12CD34", self.CODES)
        second = manager.verify("AB12CD34", first.remaining_codes)

        assert first.is_valid
        assert not second.is_valid
        assert second.remaining_codes == ("EF56GH78",)

    def test_input_normalized(self, manager: BackupCodeManager) -> None:
        """Whitespace is dropped and case folded before comparison."""
        result = manager.verify("  ab12 cd34\n", self.CODES)

        assert result.is_valid

    def test_only_one_duplicate_removed(self, manager: BackupCodeManager) -> None:
        result = manager.verify("AB12CD34", ("AB12CD34", "X", "AB12CD34"))

        assert result.remaining_codes == ("X", "AB12CD34")

    @pytest.mark.parametrize("candidate", ["", "   "])
    def test_blank_candidate_rejected(
        self, manager: BackupCodeManager, candidate: str
    ) -> None:
        assert not manager.verify(candidate, self.CODES)

    def test_empty_set(self, manager: BackupCodeManager) -> None:
        result = manager.verify("AB12CD34", [])

        assert not result.is_valid
        assert result.remaining_codes == ()

    def test_prefix_does_not_match(self, manager: BackupCodeManager) -> None:
        assert not manager.verify("AB12", self.CODES)


class TestRemaining:
    @pytest.mark.parametrize(
        ("count", "expected"), [(0, False), (2, False), (3, True), (10, True)]
    )
    def test_default_threshold(
        self, manager: BackupCodeManager, count: int, expected: bool
    ) -> None:
        assert manager.has_sufficient_remaining(["X"] * count) is expected

    def test_explicit_threshold(self, manager: BackupCodeManager) -> None:
        assert not manager.has_sufficient_remaining(["X"] * 4, threshold=5)

"""Tests for transcript normalizers."""

import pytest

from gradecheck.config.models import TranscriptDialect
from gradecheck.normalizers import (
    BordeauxTranscriptNormalizer,
    NormalizationErrorCode,
    TranscriptNormalizationResult,
)
from gradecheck.normalizers.base import as_list, dig, element_to_dict
from tests.helpers import build_bordeaux_xml, sample_bordeaux_xml


@pytest.fixture
def normalizer():
    """Bordeaux normalizer instance."""
    return BordeauxTranscriptNormalizer()


def student(**overrides):
    """A complete student dict for build_bordeaux_xml."""
    data = {
        "name": "DUPONT Elodie",
        "birth_date": "1995-05-15",
        "student_number": "N° étudiant : 22222222",
        "semesters": [("Semestre 1", "14,5"), ("Semestre 2", "15")],
    }
    data.update(overrides)
    return data


class TestXmlHelpers:
    """Test XML-to-dict conversion helpers."""

    def test_array_tags_always_lists(self, normalizer):
        """Test a single occurrence of a list tag still parses as a list."""
        tree = normalizer.parse(build_bordeaux_xml([student()]))
        individuals = tree["EREPVR10"]["LIST_G_TAB"][0]["G_TAB"][0]["LIST_G_IND"][0]["G_IND"]
        assert isinstance(individuals, list)
        assert len(individuals) == 1

    def test_repeated_plain_tags_become_lists(self):
        """Test a non-list tag occurring twice becomes a list."""
        import xml.etree.ElementTree as ET

        element = ET.fromstring("<root><a>1</a><a>2</a><b>3</b></root>")
        assert element_to_dict(element, frozenset()) == {"a": ["1", "2"], "b": "3"}

    def test_namespaces_are_dropped(self):
        """Test namespaced tags are keyed by their local name."""
        import xml.etree.ElementTree as ET

        element = ET.fromstring('<root xmlns="urn:x"><a> v </a></root>')
        assert element_to_dict(element, frozenset()) == {"a": "v"}

    def test_empty_list_tag_is_container(self):
        """Test an empty list element reads as an empty container."""
        import xml.etree.ElementTree as ET

        element = ET.fromstring("<root><LIST/></root>")
        assert element_to_dict(element, frozenset({"LIST"})) == {"LIST": [{}]}

    def test_dig(self):
        """Test path navigation returns None on any miss."""
        tree = {"A": [{"B": "x"}]}
        assert dig(tree, "A", 0, "B") == "x"
        assert dig(tree, "A", 1, "B") is None
        assert dig(tree, "Z") is None
        assert dig(tree, "A", "B") is None

    def test_as_list(self):
        """Test values are wrapped into lists."""
        assert as_list(None) == []
        assert as_list("x") == ["x"]
        assert as_list(["x"]) == ["x"]


class TestBordeauxCanNormalize:
    """Test dialect recognition."""

    def test_recognises_export(self, normalizer):
        """Test an EREPVR10 export is recognised."""
        assert normalizer.can_normalize(sample_bordeaux_xml()) is True

    def test_rejects_other_root(self, normalizer):
        """Test another root element is not recognised."""
        assert normalizer.can_normalize(b"<OTHER><LIST_G_TAB><G_TAB/></LIST_G_TAB></OTHER>") is False

    def test_rejects_malformed_xml(self, normalizer):
        """Test malformed XML is not recognised and does not raise."""
        assert normalizer.can_normalize(b"<EREPVR10><LIST_G_TAB>") is False

    def test_metadata(self, normalizer):
        """Test dialect tag and institution name."""
        assert normalizer.DIALECT == TranscriptDialect.BORDEAUX
        assert normalizer.INSTITUTION_NAME == "Université de Bordeaux"
        assert "G_IND" in normalizer.array_tags()


class TestBordeauxNormalize:
    """Test student extraction."""

    def test_extracts_students(self, normalizer):
        """Test every complete student is extracted with cleaned fields."""
        result = normalizer.normalize(sample_bordeaux_xml())

        assert isinstance(result, TranscriptNormalizationResult)
        assert result.success is True
        assert result.error is None
        assert len(result.data) == 2

        first = result.data[0]
        assert first.name == "DUPONT Elodie"
        assert first.student_number == "22222222"
        assert first.date_of_birth == "19950515"
        assert [(s.semester_name, s.grade) for s in first.semester_results] == [
            ("Semestre 1", 14.5),
            ("Semestre 2", 15.0),
        ]

    def test_normalizes_0_200_grades(self, normalizer):
        """Test semester grades on the 0-200 scale are brought to 0-20."""
        result = normalizer.normalize(build_bordeaux_xml([student(semesters=[("S1", "155")])]))
        assert result.data[0].semester_results[0].grade == 15.5

    def test_skips_unparsable_semesters(self, normalizer):
        """Test semesters with an unusable grade are skipped."""
        xml = build_bordeaux_xml([student(semesters=[("S1", "ABS"), ("S2", "12"), ("S3", "250")])])
        result = normalizer.normalize(xml)
        assert [s.semester_name for s in result.data[0].semester_results] == ["S2"]

    def test_drops_incomplete_students(self, normalizer):
        """Test students missing a name, a number or any semester are dropped."""
        xml = build_bordeaux_xml(
            [
                student(),
                student(name=None),
                student(student_number="N° étudiant :"),
                student(semesters=[("S1", "ABS")]),
                student(name="MARTIN Paul", student_number="33333333"),
            ]
        )
        result = normalizer.normalize(xml)

        assert result.success is True
        assert [s.student_number for s in result.data] == ["22222222", "33333333"]

    def test_missing_birth_date_is_allowed(self, normalizer):
        """Test a student without date of birth is kept."""
        result = normalizer.normalize(build_bordeaux_xml([student(birth_date=None)]))
        assert result.data[0].date_of_birth is None

    def test_latin1_document(self, normalizer):
        """Test the declared encoding is honoured."""
        xml = build_bordeaux_xml([student(name="DUPONT Élodie")], encoding="ISO-8859-1")
        result = normalizer.normalize(xml)
        assert result.data[0].name == "DUPONT Élodie"

    def test_reads_every_table(self, normalizer):
        """Test students spread over several G_TAB groups are all extracted."""
        xml = (
            b"<EREPVR10><LIST_G_TAB>"
            b"<G_TAB><LIST_G_IND><G_IND><LIB_NOM_PAT_IND_TPW_IND>A</LIB_NOM_PAT_IND_TPW_IND>"
            b"<COD_ETU_TPW_IND>1</COD_ETU_TPW_IND><LIST_G_TPW><G_TPW><LIB_CMT_TPW>S1</LIB_CMT_TPW>"
            b"<LIST_G_TPW_IND><G_TPW_IND><NOT_TPW>10</NOT_TPW></G_TPW_IND></LIST_G_TPW_IND>"
            b"</G_TPW></LIST_G_TPW></G_IND></LIST_G_IND></G_TAB>"
            b"<G_TAB><LIST_G_IND><G_IND><LIB_NOM_PAT_IND_TPW_IND>B</LIB_NOM_PAT_IND_TPW_IND>"
            b"<COD_ETU_TPW_IND>2</COD_ETU_TPW_IND><LIST_G_TPW><G_TPW><LIB_CMT_TPW>S1</LIB_CMT_TPW>"
            b"<LIST_G_TPW_IND><G_TPW_IND><NOT_TPW>11</NOT_TPW></G_TPW_IND></LIST_G_TPW_IND>"
            b"</G_TPW></LIST_G_TPW></G_IND></LIST_G_IND></G_TAB>"
            b"</LIST_G_TAB></EREPVR10>"
        )
        result = normalizer.normalize(xml)
        assert [s.name for s in result.data] == ["A", "B"]


class TestBordeauxFailures:
    """Test the three failure codes stay distinct."""

    def test_parsing_error(self, normalizer):
        """Test malformed XML gives PARSING_ERROR."""
        result = normalizer.normalize(b"<EREPVR10><LIST_G_TAB></EREPVR10>")

        assert result.success is False
        assert result.error == NormalizationErrorCode.PARSING_ERROR
        assert result.error_message.startswith("Error parsing the transcript file")
        assert result.data == []

    def test_invalid_xml_structure(self, normalizer):
        """Test a missing root-to-student chain gives INVALID_XML."""
        result = normalizer.normalize(b"<EREPVR10><LIST_G_TAB><G_TAB/></LIST_G_TAB></EREPVR10>")

        assert result.success is False
        assert result.error == NormalizationErrorCode.INVALID_XML

    def test_wrong_root_is_invalid_structure(self, normalizer):
        """Test a well-formed document of another kind gives INVALID_XML."""
        result = normalizer.normalize(b"<ROOT><child>1</child></ROOT>")
        assert result.error == NormalizationErrorCode.INVALID_XML

    def test_no_students(self, normalizer):
        """Test a valid structure without students gives MISSING_REQUIRED_FIELDS."""
        result = normalizer.normalize(build_bordeaux_xml([]))

        assert result.success is False
        assert result.error == NormalizationErrorCode.MISSING_REQUIRED_FIELDS

    def test_only_incomplete_students(self, normalizer):
        """Test all students dropped gives MISSING_REQUIRED_FIELDS."""
        result = normalizer.normalize(build_bordeaux_xml([student(name=None)]))
        assert result.error == NormalizationErrorCode.MISSING_REQUIRED_FIELDS

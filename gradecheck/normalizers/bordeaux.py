"""Normalizer for the Université de Bordeaux Apogée transcript export."""

from typing import Any, Dict, List, Optional

from gradecheck.config.models import TranscriptDialect
from gradecheck.domain.models import NormalizedStudentData, SemesterResult
from gradecheck.logging import get_logger
from gradecheck.utils.grades import normalize_grade
from gradecheck.utils.text import clean_text, strip_label_prefix

from .base import BaseTranscriptNormalizer, as_list, dig

logger = get_logger(__name__, component="normalizer")

ROOT_TAG = "EREPVR10"

# Student fields
NAME_TAG = "LIB_NOM_PAT_IND_TPW_IND"
BIRTH_DATE_TAG = "NAI_ETU_LI1_TPW_IND"
STUDENT_NUMBER_TAG = "COD_ETU_TPW_IND"

# Semester fields
SEMESTER_NAME_TAG = "LIB_CMT_TPW"
GRADE_TAG = "NOT_TPW"


class BordeauxTranscriptNormalizer(BaseTranscriptNormalizer):
    """Reads EREPVR10 exports.

    Layout::

        EREPVR10/LIST_G_TAB/G_TAB/LIST_G_IND/G_IND        one per student
        G_IND/LIST_G_TPW/G_TPW                            one per semester
        G_TPW/LIST_G_TPW_IND/G_TPW_IND/NOT_TPW            semester grade
    """

    DIALECT = TranscriptDialect.BORDEAUX
    INSTITUTION_NAME = "Université de Bordeaux"
    ARRAY_TAGS = frozenset(
        {
            "LIST_G_TAB",
            "G_TAB",
            "LIST_G_IND",
            "G_IND",
            "LIST_G_TPW",
            "G_TPW",
            "LIST_G_TPW_IND",
            "G_TPW_IND",
        }
    )

    def accepts(self, tree: Dict[str, Any]) -> bool:
        return bool(dig(tree, ROOT_TAG, "LIST_G_TAB"))

    def is_valid_structure(self, tree: Dict[str, Any]) -> bool:
        return bool(dig(tree, ROOT_TAG, "LIST_G_TAB", 0, "G_TAB", 0, "LIST_G_IND"))

    def extract_students(self, tree: Dict[str, Any]) -> List[NormalizedStudentData]:
        students = []
        for individual in self._individuals(tree):
            student = self._extract_student(individual)
            if student is not None:
                students.append(student)
        return students

    def _individuals(self, tree: Dict[str, Any]) -> List[Dict[str, Any]]:
        individuals = []
        for tab_list in as_list(dig(tree, ROOT_TAG, "LIST_G_TAB")):
            for tab in as_list(dig(tab_list, "G_TAB")):
                for ind_list in as_list(dig(tab, "LIST_G_IND")):
                    individuals.extend(
                        ind for ind in as_list(dig(ind_list, "G_IND")) if isinstance(ind, dict)
                    )
        return individuals

    def _extract_student(self, individual: Dict[str, Any]) -> Optional[NormalizedStudentData]:
        name = clean_text(individual.get(NAME_TAG))
        student_number = strip_label_prefix(individual.get(STUDENT_NUMBER_TAG))
        semesters = self._extract_semesters(individual)

        if not name or not student_number or not semesters:
            logger.debug(
                "Skipping incomplete student",
                extra={
                    "event": "normalizer.transcript.student_skipped",
                    "has_name": bool(name),
                    "has_student_number": bool(student_number),
                    "semester_count": len(semesters),
                },
            )
            return None

        birth_date = strip_label_prefix(individual.get(BIRTH_DATE_TAG))
        if birth_date:
            birth_date = birth_date.replace("-", "") or None

        return NormalizedStudentData(
            name=name,
            date_of_birth=birth_date,
            student_number=student_number,
            semester_results=semesters,
        )

    def _extract_semesters(self, individual: Dict[str, Any]) -> List[SemesterResult]:
        semesters = []
        for tpw_list in as_list(individual.get("LIST_G_TPW")):
            for tpw in as_list(dig(tpw_list, "G_TPW")):
                semester_name = clean_text(dig(tpw, SEMESTER_NAME_TAG))
                grade = normalize_grade(dig(tpw, "LIST_G_TPW_IND", 0, "G_TPW_IND", 0, GRADE_TAG))
                if not semester_name or grade is None:
                    continue
                semesters.append(SemesterResult(semester_name=semester_name, grade=grade))
        return semesters

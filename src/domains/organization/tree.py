# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization tree construction from flat reference rows."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from src.models.organization import ClassNode, CollegeNode, MajorNode, OrganizationTree

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


def _class_sort_key(row: Row) -> tuple:
    number = row.get("class_number")
    return (number is None, number if number is not None else 0, row.get("name") or "")


def build_organization_tree(
    colleges: Iterable[Row],
    majors: Iterable[Row],
    classes: Iterable[Row],
) -> OrganizationTree:
    """Build the College→Major→Class tree.

    Colleges and majors are ordered by ``code``, classes by
    ``class_number``. Majors whose college is missing and classes whose
    major is missing are left out of the tree.

    Args:
        colleges: College rows (id, code, name, description?).
        majors: Major rows (id, code, name, college_id).
        classes: Class rows (id, name, major_id, enrollment_year, class_number?).

    Returns:
        The organization tree.
    """
    college_nodes: dict[str, CollegeNode] = {}
    for row in sorted(colleges, key=lambda r: r["code"]):
        college_nodes[row["id"]] = CollegeNode(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            description=row.get("description"),
        )

    major_nodes: dict[str, MajorNode] = {}
    for row in sorted(majors, key=lambda r: r["code"]):
        college = college_nodes.get(row["college_id"])
        if college is None:
            logger.debug("Skipping orphan major %s (college %s)", row["id"], row["college_id"])
            continue
        node = MajorNode(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            college_id=row["college_id"],
        )
        major_nodes[node.id] = node
        college.majors.append(node)

    for row in sorted(classes, key=_class_sort_key):
        major = major_nodes.get(row["major_id"])
        if major is None:
            logger.debug("Skipping orphan class %s (major %s)", row["id"], row["major_id"])
            continue
        major.classes.append(
            ClassNode(
                id=row["id"],
                name=row["name"],
                major_id=row["major_id"],
                enrollment_year=row["enrollment_year"],
                class_number=row.get("class_number"),
            )
        )

    return OrganizationTree(colleges=list(college_nodes.values()))

# backend/sstdb/apps/training/catalog.py
"""
Static NR course catalog.

The catalog is versioned with the code: adding or retiring a course is a
deployment, not a runtime operation. Every employee's training map is keyed
by these ids and nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Course:
    """
    One regulated course.

    - id              -> spreadsheet column header, e.g. 'NR05'
    - validity_years  -> recurrent interval; None means the training never
                         expires once completed (e.g. NR06 - EPI)
    """

    id: str
    name: str
    validity_years: Optional[int]
    workload: str = ""
    description: str = ""


NR_COURSES: Tuple[Course, ...] = (
    Course(
        "NR05",
        "NR 05 - CIPA",
        1,
        "20h",
        "Comissão Interna de Prevenção de Acidentes. Foca na prevenção de acidentes e doenças decorrentes do trabalho.",
    ),
    Course(
        "NR06",
        "NR 06 - EPI",
        None,
        "4h",
        "Equipamento de Proteção Individual. Orientações sobre o uso, guarda e conservação de EPIs.",
    ),
    Course(
        "NR10",
        "NR 10 - Elétrica",
        2,
        "40h",
        "Segurança em Instalações e Serviços em Eletricidade.",
    ),
    Course(
        "NR11",
        "NR 11 - Transportes",
        1,
        "16h",
        "Transporte, Movimentação, Armazenagem e Manuseio de Materiais.",
    ),
    Course(
        "NR12",
        "NR 12 - Máquinas",
        2,
        "16h",
        "Segurança no Trabalho em Máquinas e Equipamentos.",
    ),
    Course(
        "NR13VP",
        "NR 13 - Vasos de Pressão",
        1,
        "40h",
        "Integridade estrutural de vasos de pressão e suas inspeções.",
    ),
    Course(
        "NR13CL",
        "NR 13 - Caldeiras",
        1,
        "40h",
        "Operação e manutenção de caldeiras a vapor.",
    ),
    Course(
        "NR20",
        "NR 20 - Inflamáveis",
        1,
        "8h a 32h",
        "Segurança e Saúde no Trabalho com Inflamáveis e Combustíveis.",
    ),
    Course(
        "NR23",
        "NR 23 - Incêndio",
        1,
        "8h",
        "Proteção Contra Incêndios. Medidas de prevenção e procedimentos de emergência.",
    ),
    Course(
        "NR26",
        "NR 26 - Sinalização",
        None,
        "4h",
        "Sinalização de Segurança. Padrões de cores e avisos para identificar perigos.",
    ),
    Course(
        "NR31",
        "NR 31 - Agrícola e Florestal",
        2,
        "24h",
        "Segurança e Saúde no Trabalho na Agricultura, Pecuária, Silvicultura e Exploração Florestal.",
    ),
    Course(
        "NR315",
        "NR31.5 Comissão Interna de Prevenção de Acidentes do Trabalho Rural - CIPATR",
        2,
        "20h",
        "Prevenção de acidentes e doenças no trabalho rural.",
    ),
    Course(
        "NR317",
        "NR31.7 Agrotóxicos, Aditivos, Adjuvantes e Produtos Afins",
        2,
        "16h",
        "Segurança e saúde no manuseio de agrotóxicos no trabalho rural.",
    ),
    Course(
        "NR3112",
        "NR31.12 Segurança no Trabalho em Máquinas, Equipamentos e Implementos",
        1,
        "24h",
        "Operação de máquinas e implementos agrícolas conforme NR-31.",
    ),
    Course(
        "NR32",
        "NR 32 - Serviços de Saúde",
        2,
        "32h",
        "Riscos biológicos, químicos e radiológicos em serviços de saúde.",
    ),
    Course(
        "NR33",
        "NR 33 - Espaço Confinado",
        1,
        "16h",
        "Segurança e Saúde nos Trabalhos em Espaços Confinados.",
    ),
    Course(
        "NR34",
        "NR 34 - Naval (T. Quente)",
        1,
        "12h",
        "Construção e Reparação Naval, com foco em trabalho a quente.",
    ),
    Course(
        "NR35",
        "NR 35 - Altura",
        2,
        "8h",
        "Trabalho em Altura. Planejamento, organização e execução de serviços em altura.",
    ),
)

_COURSES_BY_ID: Dict[str, Course] = {course.id: course for course in NR_COURSES}


def get_course(course_id: str) -> Optional[Course]:
    """Return the catalog entry for `course_id`, or None if unknown."""
    return _COURSES_BY_ID.get(course_id)


def course_ids() -> Tuple[str, ...]:
    return tuple(course.id for course in NR_COURSES)

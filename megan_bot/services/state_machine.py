from enum import Enum


class Stage(str, Enum):
    NONE = "none"
    AWAITING_DATA_LIMA = "awaiting_data_lima"
    AWAITING_DATA_PROVINCIA = "awaiting_data_provincia"
    ADVISOR = "advisor"
    AWAITING_GENDER = "awaiting_gender"
    AWAITING_TYPE_CABALLEROS = "awaiting_type_caballeros"
    AWAITING_TYPE_DAMAS = "awaiting_type_damas"


class Gender(str, Enum):
    CABALLEROS = "CABALLEROS"
    DAMAS = "DAMAS"


PURCHASE_STAGES = {Stage.AWAITING_DATA_LIMA, Stage.AWAITING_DATA_PROVINCIA}

_TYPE_STAGES = {
    Gender.CABALLEROS: Stage.AWAITING_TYPE_CABALLEROS,
    Gender.DAMAS: Stage.AWAITING_TYPE_DAMAS,
}


class InvalidStageError(Exception):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"No stage for gender: {value!r}")


def parse_gender(value: str) -> Gender:
    """Map free-form gender text ("caballeros", " Damas ") to a Gender."""
    try:
        return Gender((value or "").strip().upper())
    except ValueError:
        raise InvalidStageError(value) from None


def awaiting_type(gender: Gender) -> Stage:
    return _TYPE_STAGES[gender]


def is_purchase_stage(stage: Stage) -> bool:
    return stage in PURCHASE_STAGES

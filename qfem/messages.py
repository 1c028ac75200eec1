"""Localised messages, error and process codes, and console progress reporting."""

from __future__ import annotations

import enum
import sys
import threading
import time
from typing import TextIO

__all__ = [
    "Language",
    "ErrorCode",
    "ProcessCode",
    "FEMError",
    "Messenger",
    "set_language",
    "get_language",
    "text",
    "say_process",
    "say_error",
]


class Language(enum.IntEnum):
    """Languages the messages are available in."""

    English = 0
    Russian = 1


_language = Language.English


def set_language(language) -> None:
    """Select the language of every message that follows."""
    global _language
    _language = Language(language)


def get_language() -> Language:
    """Return the language currently in use."""
    return _language


# key: (English, Russian)
_TEXTS: dict[str, tuple[str, str]] = {
    "ERR": ("Error", "Ошибка"),
    "ERR_OPEN_FILE": ("Error opening file", "Ошибка открытия файла"),
    "ERR_WRITE_FILE": ("Error writing file", "Ошибка записи файла"),
    "ERR_FORMAT_FILE": ("Incorrect file format", "Некорректный формат файла"),
    "ERR_READ_FILE": ("Error reading file", "Ошибка чтения файла"),
    "ERR_INCORRECT_FE": ("Invalid finite element", "Вырожденный конечный элемент"),
    "ERR_UNKNOWN_FILE": ("Invalid file type", "Некорректный тип файла"),
    "ERR_UNKNOWN_FE": ("Invalid finite element", "Некорректный тип конечного элемента"),
    "ERR_SYNTAX": ("Syntax error", "Синтаксическая ошибка"),
    "ERR_CRAMP": ("Unbalanced brackets", "Несбалансированные скобки"),
    "ERR_NAME": ("Incorrect variable name", "Некорректное имя переменной"),
    "ERR_UNDEF_VARIABLE": ("Undefined variable", "Неопределенная переменная"),
    "ERR_DEF_VARIABLE": ("Redefining the variable", "Переопределение переменной"),
    "ERR_EQUATION_NOT_SOLVED": ("The system of equations is not solved", "Система уравнений не решена"),
    "ERR_ABORT": ("The process was stopped by user", "Процесс остановлен пользователем"),
    "ERR_MEMORY": ("Memory allocation error", "Ошибка выделения памяти"),
    "ERR_NONLINEAR": ("Invalid stress-strain curve", "Некорректно задана диаграмма деформирования"),
    "ERR_YOUNG_MODULUS": ("Invalid Young modulus", "Некорректно задано значение модуля Юнга"),
    "ERR_POISSON_RATIO": ("Invalid Poisson ratio", "Некорректно задано значение коэффициента Пуассона"),
    "ERR_THICKNESS": ("Invalid FE thickness", "Некорректно задано значение толщины элемента"),
    "ERR_TEMPERATURE": ("Invalid temperature", "Некорректно задано значение температуры"),
    "ERR_ALPHA": ("Invalid alpha", "Некорректно задано значение коэффициента температурного расширения"),
    "ERR_DENSITY": ("Invalid density", "Некорректно задано значение плотности"),
    "ERR_DAMPING": ("Invalid damping", "Некорректно задано значение параметра демпфирования"),
    "ERR_INDEX": ("Invalid index", "Некорректно задано значение индекса"),
    "MSG_START": (
        "******************************* Start *******************************",
        "******************************* Старт *******************************",
    ),
    "MSG_STOP": (
        "******************************* Stop  *******************************",
        "******************************* Стоп  *******************************",
    ),
    "MSG_CALC_CONCENTRATED_LOAD": ("Calculation of concentrated loads", "Расчет сосредоточенных нагрузок"),
    "MSG_CALC_SURFACE_LOAD": ("Calculation of surface loads", "Расчет поверхностных нагрузок"),
    "MSG_CALC_VOLUME_LOAD": ("Calculation of volume loads", "Расчет объемных нагрузок"),
    "MSG_CALC_PRESSURE_LOAD": ("Calculation of pressure loads", "Расчет нагрузок давления"),
    "MSG_CREATE_LOAD": ("Building the load vector-column", "Формирование вектора-столбца нагрузки"),
    "MSG_FILE_NAME": ("Data file: ", "Файл данных: "),
    "MSG_FE_TYPE": ("FE type: ", "Тип КЭ: "),
    "MSG_NO_TYPE": ("NOTYPE - undefined FE type", "NOTYPE - неопределенный тип конечного элемента"),
    "MSG_FE1D2": (
        "FE1D2 - one-dimensional linear element (2 nodes)",
        "FE1D2 - линейный одномерный элемент (2 узла)",
    ),
    "MSG_FE2D3": ("FE2D3 - linear triangular element (3 nodes)", "FE2D3 - линейный треугольный элемент (3 узла)"),
    "MSG_FE2D4": ("FE2D4 - quadrilateral element (4 nodes)", "FE2D4 - четырехугольный элемент (4 узла)"),
    "MSG_FE2D6": (
        "FE2D6 - quadratic triangular element (6 nodes)",
        "FE2D6 - квадратичный треугольный элемент (6 узлов)",
    ),
    "MSG_FE3D4": ("FE3D4 - linear tetrahedron (4 nodes)", "FE3D4 - линейный тетраэдр (4 узла)"),
    "MSG_FE3D8": ("FE3D8 - cube element (8 nodes)", "FE3D8 - куб (8 узлов)"),
    "MSG_FE3D10": ("FE3D10 - quadratic tetrahedron (10 nodes)", "FE3D10 - квадратичный тетраэдр (10 узлов)"),
    "MSG_FE2D3_PLATE": (
        "FE2D3P - plate triangular element (3 nodes)",
        "FE2D3P - треугольный элемент пластины (3 узла)",
    ),
    "MSG_FE2D4_PLATE": (
        "FE2D4P - plate quadrilateral element (4 nodes)",
        "FE2D4P - четырехугольный элемент пластины (4 узла)",
    ),
    "MSG_FE2D6_PLATE": (
        "FE2D6P - plate quadrilateral element (6 nodes)",
        "FE2D6P - треугольный элемент пластины (6 узлов)",
    ),
    "MSG_FE3D3_SHELL": (
        "FE3D3S - shell triangular element (3 nodes)",
        "FE3D3S - треугольный оболочечный элемент (3 узла)",
    ),
    "MSG_FE3D4_SHELL": (
        "FE3D4S - shell quadrilateral element (4 nodes)",
        "FE3D4S - четырехугольный оболочечный элемент (4 узла)",
    ),
    "MSG_FE3D6_SHELL": (
        "FE3D6S - shell triangular element (6 nodes)",
        "FE3D6S - треугольный оболочечный элемент (6 узлов)",
    ),
    "MSG_NUM_NODES": ("Number of nodes: ", "Количество узлов: "),
    "MSG_NUM_FE": ("Number of finite elements: ", "Количество конечных элементов: "),
    "MSG_FE_STATIC_PROCESS": ("Building a global stiffness matrix", "Формирование глобальной матрицы жесткости"),
    "MSG_FE_DYNAMIC_PROCESS": ("Building of the global matrix", "Формирование глобальных матриц"),
    "MSG_BOUNDARY_PROCESS": ("Calculation of boundary conditions", "Вычисление граничных условий"),
    "MSG_TIMER": ("Done in: ", "Выполнено за: "),
    "MSG_LEAD_TIME": ("Lead time: ", "Время выполнения: "),
    "MSG_SEC": (" sec.", " сек."),
    "MSG_SYSTEM_PREPARE": ("Preparing the system of equations", "Подготовка системы уравнений"),
    "MSG_SYSTEM_SOLUTION": ("Solution of the system of equations", "Решение системы уравнений"),
    "MSG_ITERATION_ERROR": ("Error", "Невязка"),
    "MSG_SYSTEM_FACTORIZATION": ("Factorization equations", "Факторизация системы уравнений"),
    "MSG_PRINT_RESULT": ("Printing results", "Печать результатов расчета"),
    "MSG_LOAD": ("Load: ", "Нагрузка: "),
    "MSG_SI": ("Max stress intensity: ", "Максимальная интенсивность напряжений: "),
    "MSG_TIME_ITERATION": ("Time calculation", "Расчет по времени"),
    "MSG_MESH_ANALYSE": ("Analysing of the mesh structure", "Анализ структуры сетки"),
    "MSG_CHECK_MESH": ("Checking mesh", "Проверка структуры сетки"),
    "MSG_RESTRUCTURE_MESH": ("Restructuring mesh", "Перестроение сетки"),
    "MSG_RESAVE_MESH": ("Rewritinging mesh", "Перезапись сетки"),
    "MSG_CREATE_BC": ("Creating a list of boundary conditions", "Создание списка краевых условий"),
    "MSG_WRITE_RESULT": ("Writing results", "Сохранение результатов расчета"),
    "MSG_READ_RESULT": ("Reading results", "Загрузка результатов расчета"),
    "MSG_CALC_STANDART_RESULTS": ("Calculation of standard FE results", "Расчет стандартных результатов КЭ"),
    "MSG_MESH_NAME": ("Mesh file: ", "Файл сетки: "),
    "NUM_THREAD": ("Using threads: ", "Использовано потоков: "),
    "INITIAL_CONDITION_PARAMETER": ("Initial condition", "Начальные условия"),
    "BOUNDARY_CONDITION_PARAMETER": ("Boundary condition", "Граничные условия"),
    "VOLUME_LOAD_PARAMETER": ("Volume load", "Объемная нагрузка"),
    "SURFACE_LOAD_PARAMETER": ("Surface load", "Поверхностная нагрузка"),
    "CONCENTRATED_LOAD_PARAMETER": ("Concentrated load", "Сосредоточенная нагрузка"),
    "PRESSURE_LOAD_PARAMETER": ("Pressure load", "Нагрузка давлением"),
    "YOUNG_MODULUS_PARAMETER": ("Young's modulus", "Модуль Юнга"),
    "POISSON_RATIO_PARAMETER": ("Poisson's ratio", "Коэффициент Пуассона"),
    "THICKNESS_PARAMETER": ("FE thickness", "Толщина КЭ"),
    "TEMPERATURE_PARAMETER": ("Temperature difference", "Разность температур"),
    "ALPHA_PARAMETER": ("Thermal expansion", "Температурное расширение"),
    "DENSITY_PARAMETER": ("Density", "Плотность"),
    "DAMPING_PARAMETER": ("Damping", "Демпфирование"),
    "STRESS_STRAIN_CURVE_PARAMETER": ("Stress–strain curve", "Диаграмма деформирования"),
    "UNDEFINED_PARAMETER": ("Undefined", "Неопределенный параметер"),
    "MSG_ITERATION": ("Iterate: ", "Выполнено итераций: "),
}


def text(key: str) -> str:
    """Return the message ``key`` in the current language.

    Raises KeyError for an unknown key.
    """
    english, russian = _TEXTS[key]
    return russian if _language == Language.Russian else english


class ErrorCode(enum.IntEnum):
    """Reasons a computation can fail."""

    Undefined = 0
    EOpenFile = 1
    EReadFile = 2
    EWriteFile = 3
    EFormatFile = 4
    EUndefTypeFile = 5
    EUndefTypeFE = 6
    ESyntax = 7
    EBracket = 8
    EName = 9
    EUndefVariable = 10
    ERedefVariable = 11
    EIncorrectFE = 12
    EEquationNotSolved = 13
    EAbort = 14
    EAllocMemory = 15
    EStressStrainCurve = 16
    EEmptyExpression = 17
    EYoungModulus = 18
    EPoissonRatio = 19
    EThickness = 20
    ETemperature = 21
    EAlpha = 22
    EDensity = 23
    EDamping = 24
    EIndex = 25


class ProcessCode(enum.IntEnum):
    """Stages of a computation reported to the user."""

    Undefined = 0
    GeneratingStaticMatrix = 1
    CalcBoundaryCondition = 2
    UsingLoad = 3
    PreparingSystemEquation = 4
    FactorizationSystemEquation = 5
    PrintingResult = 6
    SolutionSystemEquation = 7
    GeneratingDynamicMatrix = 8
    AnalysingMesh = 9
    CheckingMesh = 10
    RestructuringMesh = 11
    GeneratingBoundaryCondition = 12
    GeneratingConcentratedLoad = 13
    GeneratingSurfaceLoad = 14
    GeneratingVolumeLoad = 15
    GeneratingPressureLoad = 16
    WritingResult = 17
    ReadingResult = 18
    GeneratingResult = 19


_PROCESS_KEYS = {
    ProcessCode.GeneratingStaticMatrix: "MSG_FE_STATIC_PROCESS",
    ProcessCode.CalcBoundaryCondition: "MSG_BOUNDARY_PROCESS",
    ProcessCode.UsingLoad: "MSG_CREATE_LOAD",
    ProcessCode.PreparingSystemEquation: "MSG_SYSTEM_PREPARE",
    ProcessCode.FactorizationSystemEquation: "MSG_SYSTEM_FACTORIZATION",
    ProcessCode.PrintingResult: "MSG_PRINT_RESULT",
    ProcessCode.GeneratingConcentratedLoad: "MSG_CALC_CONCENTRATED_LOAD",
    ProcessCode.GeneratingSurfaceLoad: "MSG_CALC_SURFACE_LOAD",
    ProcessCode.GeneratingVolumeLoad: "MSG_CALC_VOLUME_LOAD",
    ProcessCode.GeneratingPressureLoad: "MSG_CALC_PRESSURE_LOAD",
    ProcessCode.GeneratingResult: "MSG_CALC_STANDART_RESULTS",
    ProcessCode.SolutionSystemEquation: "MSG_SYSTEM_SOLUTION",
    ProcessCode.GeneratingDynamicMatrix: "MSG_FE_DYNAMIC_PROCESS",
    ProcessCode.AnalysingMesh: "MSG_MESH_ANALYSE",
    ProcessCode.CheckingMesh: "MSG_CHECK_MESH",
    ProcessCode.RestructuringMesh: "MSG_RESTRUCTURE_MESH",
    ProcessCode.GeneratingBoundaryCondition: "MSG_CREATE_BC",
    ProcessCode.WritingResult: "MSG_WRITE_RESULT",
    ProcessCode.ReadingResult: "MSG_READ_RESULT",
}

_ERROR_KEYS = {
    ErrorCode.EOpenFile: "ERR_OPEN_FILE",
    ErrorCode.EReadFile: "ERR_READ_FILE",
    ErrorCode.EWriteFile: "ERR_WRITE_FILE",
    ErrorCode.EFormatFile: "ERR_FORMAT_FILE",
    ErrorCode.EUndefTypeFile: "ERR_FORMAT_FILE",
    ErrorCode.EUndefTypeFE: "ERR_UNKNOWN_FE",
    ErrorCode.ESyntax: "ERR_SYNTAX",
    ErrorCode.EBracket: "ERR_CRAMP",
    ErrorCode.EName: "ERR_NAME",
    ErrorCode.EUndefVariable: "ERR_UNDEF_VARIABLE",
    ErrorCode.ERedefVariable: "ERR_DEF_VARIABLE",
    ErrorCode.EIncorrectFE: "ERR_INCORRECT_FE",
    ErrorCode.EEquationNotSolved: "ERR_EQUATION_NOT_SOLVED",
    ErrorCode.EAbort: "ERR_ABORT",
    ErrorCode.EAllocMemory: "ERR_MEMORY",
    ErrorCode.EStressStrainCurve: "ERR_NONLINEAR",
    ErrorCode.EYoungModulus: "ERR_YOUNG_MODULUS",
    ErrorCode.EPoissonRatio: "ERR_POISSON_RATIO",
    ErrorCode.EThickness: "ERR_THICKNESS",
    ErrorCode.ETemperature: "ERR_TEMPERATURE",
    ErrorCode.EAlpha: "ERR_ALPHA",
    ErrorCode.EDensity: "ERR_DENSITY",
    ErrorCode.EDamping: "ERR_DAMPING",
    ErrorCode.EIndex: "ERR_INDEX",
}


def say_process(code: ProcessCode) -> str:
    """Describe a process stage; an empty string for stages without a text."""
    key = _PROCESS_KEYS.get(ProcessCode(code))
    return text(key) if key else ""


def say_error(code: ErrorCode) -> str:
    """Describe an error code; an empty string for codes without a text."""
    key = _ERROR_KEYS.get(ErrorCode(code))
    return text(key) if key else ""


class FEMError(Exception):
    """A computation failed for the reason given by ``code``."""

    def __init__(self, code: ErrorCode):
        self.code = ErrorCode(code)
        super().__init__(self.code)

    def __str__(self) -> str:
        return say_error(self.code) or self.code.name


_SPINNER = "|/-\\"


class Messenger:
    """Reports the progress of the current process stage on a text stream."""

    def __init__(self, out: TextIO | None = None, spin_interval: float = 0.1):
        self.out = out if out is not None else sys.stdout
        self.spin_interval = spin_interval
        self.process_code = ProcessCode.Undefined
        self.process_start = 0
        self.process_stop = 0
        self.process_current = 0
        self.process_step = 1
        self.old_percent = 0
        self._lock = threading.Lock()
        self._started = time.monotonic()
        self._stop_event = threading.Event()
        self._spinner: threading.Thread | None = None

    def _write(self, data: str) -> None:
        self.out.write(data)
        self.out.flush()

    def _spin(self, stop_event: threading.Event, code: ProcessCode) -> None:
        i = 0
        while not stop_event.is_set():
            self._write(f"\r{say_process(code)}... {_SPINNER[i % 4]}")
            i += 1
            stop_event.wait(self.spin_interval)
        self._write(f"\r{say_process(code)}... 100%\n")

    def _halt_spinner(self) -> None:
        if self._spinner is not None:
            self._stop_event.set()
            self._spinner.join()
            self._spinner = None

    def set_process(self, code, start=None, stop=None, step=1) -> None:
        """Begin a stage.

        Without ``start`` and ``stop`` a spinner runs until :meth:`stop`;
        with them progress is counted by :meth:`add_progress`.
        """
        code = ProcessCode(code)
        with self._lock:
            self.process_code = code
            self.process_current = self.old_percent = 0
            if start is None or stop is None:
                self.process_start = self.process_stop = 0
            else:
                self.process_start = start
                self.process_stop = stop
                self.process_step = step
        if start is None or stop is None:
            self._halt_spinner()
            self._stop_event = threading.Event()
            self._spinner = threading.Thread(
                target=self._spin, args=(self._stop_event, code), daemon=True
            )
            self._spinner.start()
        else:
            self._write(f"\r{say_process(code)}... 0%")
        self._started = time.monotonic()

    def add_progress(self) -> None:
        """Count one step of the current stage and show the new percentage."""
        with self._lock:
            span = self.process_stop - self.process_start
            if span:
                self.process_current += 1
                percent = int(100.0 * self.process_current / span)
            else:
                percent = 100
            if self.process_current == self.process_stop:
                self._write(f"\r{say_process(self.process_code)}... 100%")
                return
            if percent == self.old_percent:
                return
            if self.process_step and percent % self.process_step == 0:
                self._write(f"\r{say_process(self.process_code)}... {percent}%")
            self.old_percent = percent

    def _elapsed(self) -> int:
        return int(time.monotonic() - self._started)

    def stop_process(self) -> None:
        """Finish a counted stage and report how long it took."""
        self._write(
            f"\r{say_process(self.process_code)}... 100%\n"
            f"{text('MSG_TIMER')}{self._elapsed()}{text('MSG_SEC')}\n"
        )

    def stop(self) -> None:
        """Stop the spinner of the current stage and report how long it took."""
        self._halt_spinner()
        self._write(f"{text('MSG_TIMER')}{self._elapsed()}{text('MSG_SEC')}\n")
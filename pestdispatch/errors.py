# pestdispatch/errors.py
"""pestdispatch 예외 계층.

파이프라인 실패는 네 갈래로 나뉘며 모두 복구 불가(fail-fast)다.
- ArgumentError  : 속성 인자 개수/키/값 오류 (컴파일러 호출 전)
- ShapeError     : 컴파일러 출력 모양이 가정과 다름(마커/토큰 패턴 부재)
- EnumParseError : 잘라낸 `enum Rule` 텍스트 파싱 실패
- AssemblyError  : 최종 조립 결과가 올바른 토큰열이 아님
"""

from __future__ import annotations


class PestDispatchError(Exception):
    """pestdispatch 파이프라인 오류의 공통 부모."""


class ArgumentError(PestDispatchError, ValueError):
    pass


class ShapeError(PestDispatchError):
    pass


class EnumParseError(PestDispatchError, SyntaxError):
    pass


class AssemblyError(PestDispatchError):
    pass

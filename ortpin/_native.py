"""
ctypes mirror of the onnxruntime C API function table.

``OrtGetApiBase()`` returns an ``OrtApiBase`` whose ``GetApi(version)``
returns a pointer to ``OrtApi``: a struct of function pointers whose order
is fixed by the C header (entries are only ever appended). Only the entries
ortpin calls carry a prototype; the rest are declared as opaque pointers so
the offsets of later entries stay correct.

Every entry returning ``OrtStatus*`` is declared with a ``c_void_p`` result:
NULL (``None``) means success.
"""

import ctypes
import sys
from enum import IntEnum

# =============================================================================
# Scalar aliases
# =============================================================================

OrtStatusPtr = ctypes.c_void_p

# ORTCHAR_T is wchar_t on Windows and char everywhere else
if sys.platform == "win32":
    ORTCHAR_P = ctypes.c_wchar_p
else:
    ORTCHAR_P = ctypes.c_char_p

_VOIDP = ctypes.c_void_p
_PVOIDP = ctypes.POINTER(ctypes.c_void_p)
_PCHARP = ctypes.POINTER(ctypes.c_char_p)

# =============================================================================
# Enums
# =============================================================================


class AllocatorType(IntEnum):
    """OrtAllocatorType."""

    INVALID = -1
    DEVICE = 0
    ARENA = 1


class MemType(IntEnum):
    """OrtMemType."""

    CPU_INPUT = -2
    CPU_OUTPUT = -1
    DEFAULT = 0


class LoggingLevel(IntEnum):
    """OrtLoggingLevel."""

    VERBOSE = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    FATAL = 4


# =============================================================================
# Prototypes
# =============================================================================

_FN = ctypes.CFUNCTYPE

GetErrorCodeFn = _FN(ctypes.c_int, _VOIDP)
GetErrorMessageFn = _FN(ctypes.c_char_p, _VOIDP)
CreateEnvFn = _FN(OrtStatusPtr, ctypes.c_int, ctypes.c_char_p, _PVOIDP)
CreateSessionFn = _FN(OrtStatusPtr, _VOIDP, ORTCHAR_P, _VOIDP, _PVOIDP)
CreateSessionFromArrayFn = _FN(OrtStatusPtr, _VOIDP, _VOIDP, ctypes.c_size_t, _VOIDP, _PVOIDP)
RunFn = _FN(
    OrtStatusPtr,
    _VOIDP,  # session
    _VOIDP,  # run options (nullable)
    _PCHARP,  # input names
    _PVOIDP,  # input values
    ctypes.c_size_t,  # input count
    _PCHARP,  # output names
    ctypes.c_size_t,  # output count
    _PVOIDP,  # output values (in/out)
)
CreateOutPtrFn = _FN(OrtStatusPtr, _PVOIDP)
SessionGetCountFn = _FN(OrtStatusPtr, _VOIDP, ctypes.POINTER(ctypes.c_size_t))
SessionGetNameFn = _FN(OrtStatusPtr, _VOIDP, ctypes.c_size_t, _VOIDP, _PVOIDP)
RunOptionsSetRunTagFn = _FN(OrtStatusPtr, _VOIDP, ctypes.c_char_p)
RunOptionsFlagFn = _FN(OrtStatusPtr, _VOIDP)
CreateTensorWithDataFn = _FN(
    OrtStatusPtr,
    _VOIDP,  # memory info
    _VOIDP,  # data
    ctypes.c_size_t,  # data length in bytes
    ctypes.POINTER(ctypes.c_int64),  # shape
    ctypes.c_size_t,  # rank
    ctypes.c_int,  # ONNXTensorElementDataType
    _PVOIDP,  # out value
)
IsTensorFn = _FN(OrtStatusPtr, _VOIDP, ctypes.POINTER(ctypes.c_int))
CreateCpuMemoryInfoFn = _FN(OrtStatusPtr, ctypes.c_int, ctypes.c_int, _PVOIDP)
AllocatorFreeFn = _FN(OrtStatusPtr, _VOIDP, _VOIDP)
GetAllocatorFn = _FN(OrtStatusPtr, _PVOIDP)
ReleaseFn = _FN(None, _VOIDP)
SessionGetModelMetadataFn = _FN(OrtStatusPtr, _VOIDP, _PVOIDP)
ModelMetadataGetStringFn = _FN(OrtStatusPtr, _VOIDP, _VOIDP, _PVOIDP)
ModelMetadataLookupFn = _FN(OrtStatusPtr, _VOIDP, _VOIDP, ctypes.c_char_p, _PVOIDP)
ModelMetadataGetVersionFn = _FN(OrtStatusPtr, _VOIDP, ctypes.POINTER(ctypes.c_int64))

# =============================================================================
# Function table layout
# =============================================================================

# (name, prototype) in header order. Entries ortpin never calls are _VOIDP.
ORT_API_FIELDS = [
    ("CreateStatus", _VOIDP),  # 0
    ("GetErrorCode", GetErrorCodeFn),
    ("GetErrorMessage", GetErrorMessageFn),
    ("CreateEnv", CreateEnvFn),
    ("CreateEnvWithCustomLogger", _VOIDP),
    ("EnableTelemetryEvents", _VOIDP),
    ("DisableTelemetryEvents", _VOIDP),
    ("CreateSession", CreateSessionFn),
    ("CreateSessionFromArray", CreateSessionFromArrayFn),
    ("Run", RunFn),
    ("CreateSessionOptions", CreateOutPtrFn),  # 10
    ("SetOptimizedModelFilePath", _VOIDP),
    ("CloneSessionOptions", _VOIDP),
    ("SetSessionExecutionMode", _VOIDP),
    ("EnableProfiling", _VOIDP),
    ("DisableProfiling", _VOIDP),
    ("EnableMemPattern", _VOIDP),
    ("DisableMemPattern", _VOIDP),
    ("EnableCpuMemArena", _VOIDP),
    ("DisableCpuMemArena", _VOIDP),
    ("SetSessionLogId", _VOIDP),  # 20
    ("SetSessionLogVerbosityLevel", _VOIDP),
    ("SetSessionLogSeverityLevel", _VOIDP),
    ("SetSessionGraphOptimizationLevel", _VOIDP),
    ("SetIntraOpNumThreads", _VOIDP),
    ("SetInterOpNumThreads", _VOIDP),
    ("CreateCustomOpDomain", _VOIDP),
    ("CustomOpDomain_Add", _VOIDP),
    ("AddCustomOpDomain", _VOIDP),
    ("RegisterCustomOpsLibrary", _VOIDP),
    ("SessionGetInputCount", SessionGetCountFn),  # 30
    ("SessionGetOutputCount", SessionGetCountFn),
    ("SessionGetOverridableInitializerCount", _VOIDP),
    ("SessionGetInputTypeInfo", _VOIDP),
    ("SessionGetOutputTypeInfo", _VOIDP),
    ("SessionGetOverridableInitializerTypeInfo", _VOIDP),
    ("SessionGetInputName", SessionGetNameFn),
    ("SessionGetOutputName", SessionGetNameFn),
    ("SessionGetOverridableInitializerName", _VOIDP),
    ("CreateRunOptions", CreateOutPtrFn),
    ("RunOptionsSetRunLogVerbosityLevel", _VOIDP),  # 40
    ("RunOptionsSetRunLogSeverityLevel", _VOIDP),
    ("RunOptionsSetRunTag", RunOptionsSetRunTagFn),
    ("RunOptionsGetRunLogVerbosityLevel", _VOIDP),
    ("RunOptionsGetRunLogSeverityLevel", _VOIDP),
    ("RunOptionsGetRunTag", _VOIDP),
    ("RunOptionsSetTerminate", RunOptionsFlagFn),
    ("RunOptionsUnsetTerminate", RunOptionsFlagFn),
    ("CreateTensorAsOrtValue", _VOIDP),
    ("CreateTensorWithDataAsOrtValue", CreateTensorWithDataFn),
    ("IsTensor", IsTensorFn),  # 50
    ("GetTensorMutableData", _VOIDP),
    ("FillStringTensor", _VOIDP),
    ("GetStringTensorDataLength", _VOIDP),
    ("GetStringTensorContent", _VOIDP),
    ("CastTypeInfoToTensorInfo", _VOIDP),
    ("GetOnnxTypeFromTypeInfo", _VOIDP),
    ("CreateTensorTypeAndShapeInfo", _VOIDP),
    ("SetTensorElementType", _VOIDP),
    ("SetDimensions", _VOIDP),
    ("GetTensorElementType", _VOIDP),  # 60
    ("GetDimensionsCount", _VOIDP),
    ("GetDimensions", _VOIDP),
    ("GetSymbolicDimensions", _VOIDP),
    ("GetTensorShapeElementCount", _VOIDP),
    ("GetTensorTypeAndShape", _VOIDP),
    ("GetTypeInfo", _VOIDP),
    ("GetValueType", _VOIDP),
    ("CreateMemoryInfo", _VOIDP),
    ("CreateCpuMemoryInfo", CreateCpuMemoryInfoFn),
    ("CompareMemoryInfo", _VOIDP),  # 70
    ("MemoryInfoGetName", _VOIDP),
    ("MemoryInfoGetId", _VOIDP),
    ("MemoryInfoGetMemType", _VOIDP),
    ("MemoryInfoGetType", _VOIDP),
    ("AllocatorAlloc", _VOIDP),
    ("AllocatorFree", AllocatorFreeFn),
    ("AllocatorGetInfo", _VOIDP),
    ("GetAllocatorWithDefaultOptions", GetAllocatorFn),
    ("AddFreeDimensionOverride", _VOIDP),
    ("GetValue", _VOIDP),  # 80
    ("GetValueCount", _VOIDP),
    ("CreateValue", _VOIDP),
    ("CreateOpaqueValue", _VOIDP),
    ("GetOpaqueValue", _VOIDP),
    ("KernelInfoGetAttribute_float", _VOIDP),
    ("KernelInfoGetAttribute_int64", _VOIDP),
    ("KernelInfoGetAttribute_string", _VOIDP),
    ("KernelContext_GetInputCount", _VOIDP),
    ("KernelContext_GetOutputCount", _VOIDP),
    ("KernelContext_GetInput", _VOIDP),  # 90
    ("KernelContext_GetOutput", _VOIDP),
    ("ReleaseEnv", ReleaseFn),
    ("ReleaseStatus", ReleaseFn),
    ("ReleaseMemoryInfo", ReleaseFn),
    ("ReleaseSession", ReleaseFn),
    ("ReleaseValue", ReleaseFn),
    ("ReleaseRunOptions", ReleaseFn),
    ("ReleaseTypeInfo", _VOIDP),
    ("ReleaseTensorTypeAndShapeInfo", _VOIDP),
    ("ReleaseSessionOptions", ReleaseFn),  # 100
    ("ReleaseCustomOpDomain", _VOIDP),
    ("GetDenotationFromTypeInfo", _VOIDP),
    ("CastTypeInfoToMapTypeInfo", _VOIDP),
    ("CastTypeInfoToSequenceTypeInfo", _VOIDP),
    ("GetMapKeyType", _VOIDP),
    ("GetMapValueType", _VOIDP),
    ("ReleaseMapTypeInfo", _VOIDP),
    ("GetSequenceElementType", _VOIDP),
    ("ReleaseSequenceTypeInfo", _VOIDP),
    ("SessionEndProfiling", _VOIDP),  # 110
    ("SessionGetModelMetadata", SessionGetModelMetadataFn),
    ("ModelMetadataGetProducerName", ModelMetadataGetStringFn),
    ("ModelMetadataGetGraphName", ModelMetadataGetStringFn),
    ("ModelMetadataGetDomain", ModelMetadataGetStringFn),
    ("ModelMetadataGetDescription", ModelMetadataGetStringFn),
    ("ModelMetadataLookupCustomMetadataMap", ModelMetadataLookupFn),
    ("ModelMetadataGetVersion", ModelMetadataGetVersionFn),
    ("ReleaseModelMetadata", ReleaseFn),  # 118
]


class OrtApi(ctypes.Structure):
    """Leading entries of ``struct OrtApi``."""

    _fields_ = ORT_API_FIELDS


GetApiFn = _FN(ctypes.POINTER(OrtApi), ctypes.c_uint32)
GetVersionStringFn = _FN(ctypes.c_char_p)


class OrtApiBase(ctypes.Structure):
    """``struct OrtApiBase``."""

    _fields_ = [
        ("GetApi", GetApiFn),
        ("GetVersionString", GetVersionStringFn),
    ]


def setup_signatures(lib: ctypes.CDLL) -> None:
    """Configure restype/argtypes for the library's exported symbols."""
    lib.OrtGetApiBase.argtypes = []
    lib.OrtGetApiBase.restype = ctypes.POINTER(OrtApiBase)

"""
Protocol messages and service stubs spoken by TensorFlow Serving.

The .proto files below this package are the subset of the upstream
tensorflow/core and tensorflow_serving schemas used by this client, with
the upstream packages, field numbers and service names. grpcio-tools
compiles them on first import; the resulting *_pb2 and *_pb2_grpc modules
are importable under tfserving_client.protos and their types are
re-exported here by message name.
"""

import os

import grpc

_ROOT = ("tfserving_client", "protos")


def _path(relative: str) -> str:
    return os.path.join(*_ROOT, *relative.split("/"))


def _protos(relative: str):
    return grpc.protos(_path(relative))


types_pb2 = _protos("tensorflow/core/framework/types.proto")
tensor_shape_pb2 = _protos("tensorflow/core/framework/tensor_shape.proto")
tensor_pb2 = _protos("tensorflow/core/framework/tensor.proto")
feature_pb2 = _protos("tensorflow/core/example/feature.proto")
example_pb2 = _protos("tensorflow/core/example/example.proto")
meta_graph_pb2 = _protos("tensorflow/core/protobuf/meta_graph.proto")
error_codes_pb2 = _protos("tensorflow/core/protobuf/error_codes.proto")

model_pb2 = _protos("tensorflow_serving/apis/model.proto")
input_pb2 = _protos("tensorflow_serving/apis/input.proto")
classification_pb2 = _protos("tensorflow_serving/apis/classification.proto")
regression_pb2 = _protos("tensorflow_serving/apis/regression.proto")
predict_pb2 = _protos("tensorflow_serving/apis/predict.proto")
inference_pb2 = _protos("tensorflow_serving/apis/inference.proto")
get_model_metadata_pb2 = _protos("tensorflow_serving/apis/get_model_metadata.proto")
status_pb2 = _protos("tensorflow_serving/util/status.proto")
get_model_status_pb2 = _protos("tensorflow_serving/apis/get_model_status.proto")
model_server_config_pb2 = _protos("tensorflow_serving/config/model_server_config.proto")
model_management_pb2 = _protos("tensorflow_serving/apis/model_management.proto")

prediction_service_pb2, prediction_service_pb2_grpc = grpc.protos_and_services(
    _path("tensorflow_serving/apis/prediction_service.proto")
)
model_service_pb2, model_service_pb2_grpc = grpc.protos_and_services(
    _path("tensorflow_serving/apis/model_service.proto")
)

# tensorflow
DataType = types_pb2.DataType
ErrorCode = error_codes_pb2.Code
TensorShapeProto = tensor_shape_pb2.TensorShapeProto
TensorProto = tensor_pb2.TensorProto
BytesList = feature_pb2.BytesList
FloatList = feature_pb2.FloatList
Int64List = feature_pb2.Int64List
Feature = feature_pb2.Feature
Features = feature_pb2.Features
Example = example_pb2.Example
TensorInfo = meta_graph_pb2.TensorInfo
SignatureDef = meta_graph_pb2.SignatureDef

# tensorflow.serving
ModelSpec = model_pb2.ModelSpec
ExampleList = input_pb2.ExampleList
ExampleListWithContext = input_pb2.ExampleListWithContext
Input = input_pb2.Input
Class = classification_pb2.Class
Classifications = classification_pb2.Classifications
ClassificationResult = classification_pb2.ClassificationResult
ClassificationRequest = classification_pb2.ClassificationRequest
ClassificationResponse = classification_pb2.ClassificationResponse
Regression = regression_pb2.Regression
RegressionResult = regression_pb2.RegressionResult
RegressionRequest = regression_pb2.RegressionRequest
RegressionResponse = regression_pb2.RegressionResponse
PredictRequest = predict_pb2.PredictRequest
PredictResponse = predict_pb2.PredictResponse
InferenceTask = inference_pb2.InferenceTask
InferenceResult = inference_pb2.InferenceResult
MultiInferenceRequest = inference_pb2.MultiInferenceRequest
MultiInferenceResponse = inference_pb2.MultiInferenceResponse
SignatureDefMap = get_model_metadata_pb2.SignatureDefMap
GetModelMetadataRequest = get_model_metadata_pb2.GetModelMetadataRequest
GetModelMetadataResponse = get_model_metadata_pb2.GetModelMetadataResponse
StatusProto = status_pb2.StatusProto
ModelVersionStatus = get_model_status_pb2.ModelVersionStatus
ModelVersionState = get_model_status_pb2.ModelVersionStatus.State
GetModelStatusRequest = get_model_status_pb2.GetModelStatusRequest
GetModelStatusResponse = get_model_status_pb2.GetModelStatusResponse
ModelConfig = model_server_config_pb2.ModelConfig
ModelConfigList = model_server_config_pb2.ModelConfigList
ModelServerConfig = model_server_config_pb2.ModelServerConfig
ReloadConfigRequest = model_management_pb2.ReloadConfigRequest
ReloadConfigResponse = model_management_pb2.ReloadConfigResponse

# Services
PredictionServiceStub = prediction_service_pb2_grpc.PredictionServiceStub
PredictionServiceServicer = prediction_service_pb2_grpc.PredictionServiceServicer
add_PredictionServiceServicer_to_server = prediction_service_pb2_grpc.add_PredictionServiceServicer_to_server
ModelServiceStub = model_service_pb2_grpc.ModelServiceStub
ModelServiceServicer = model_service_pb2_grpc.ModelServiceServicer
add_ModelServiceServicer_to_server = model_service_pb2_grpc.add_ModelServiceServicer_to_server

DT_FLOAT = types_pb2.DT_FLOAT
DT_DOUBLE = types_pb2.DT_DOUBLE
DT_INT32 = types_pb2.DT_INT32
DT_UINT8 = types_pb2.DT_UINT8
DT_INT16 = types_pb2.DT_INT16
DT_INT8 = types_pb2.DT_INT8
DT_STRING = types_pb2.DT_STRING
DT_INT64 = types_pb2.DT_INT64
DT_BOOL = types_pb2.DT_BOOL
DT_UINT16 = types_pb2.DT_UINT16
DT_HALF = types_pb2.DT_HALF
DT_UINT32 = types_pb2.DT_UINT32
DT_UINT64 = types_pb2.DT_UINT64

PREDICTION_SERVICE = "tensorflow.serving.PredictionService"
MODEL_SERVICE = "tensorflow.serving.ModelService"

CLASSIFY_METHOD_NAME = "tensorflow/serving/classify"
REGRESS_METHOD_NAME = "tensorflow/serving/regress"
PREDICT_METHOD_NAME = "tensorflow/serving/predict"

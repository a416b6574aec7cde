import pytest
import yaml

from capx.config.models import SCParameters
from capx.execution.runner import CommandTimeoutError
from capx.providers.aws import EBS_FSTYPE_KEY, storage_class_aws_template
from capx.providers.errors import StorageClassError
from capx.storage.manifest import apply_manifest, render_storage_class


class FakeNode:
    def __init__(self, rc=0, out="storageclass.storage.k8s.io/keos created\n", err="", exc=None):
        self.name = "fake"
        self.calls = []
        self._result = (rc, out, err)
        self._exc = exc

    def run(self, argv, *, env=None, stdin_text=None, timeout=None):
        self.calls.append({"argv": list(argv), "env": env, "stdin": stdin_text, "timeout": timeout})
        if self._exc:
            raise self._exc
        return self._result


@pytest.mark.parametrize("type_", ["gp2", "gp3", "io2"])
def test_fstype_key_is_namespaced(type_):
    text = render_storage_class(
        storage_class_aws_template,
        SCParameters(type=type_, fs_type="ext4"),
        fstype_key=EBS_FSTYPE_KEY,
    )
    assert "fsType" not in text
    doc = yaml.safe_load(text)
    assert doc["parameters"] == {"type": type_, "csi.storage.k8s.io/fstype": "ext4"}


def test_manifest_shape():
    text = render_storage_class(
        storage_class_aws_template,
        SCParameters(type="gp3", encrypted=True, kms_key_id="key-1"),
        fstype_key=EBS_FSTYPE_KEY,
    )
    doc = yaml.safe_load(text)
    assert doc["apiVersion"] == "storage.k8s.io/v1"
    assert doc["kind"] == "StorageClass"
    assert doc["metadata"]["name"] == "keos"
    assert doc["metadata"]["annotations"] == {"storageclass.kubernetes.io/is-default-class": "true"}
    assert doc["provisioner"] == "ebs.csi.aws.com"
    assert doc["volumeBindingMode"] == "WaitForFirstConsumer"
    assert doc["parameters"] == {"type": "gp3", "encrypted": "true", "kmsKeyId": "key-1"}


def test_template_is_left_untouched():
    render_storage_class(storage_class_aws_template, SCParameters(type="gp3"), fstype_key=EBS_FSTYPE_KEY)
    assert storage_class_aws_template["parameters"] == {}


def test_apply_streams_manifest_on_stdin():
    node = FakeNode()
    apply_manifest(node, "/kind/wc.kubeconfig", "kind: StorageClass\n", timeout=12)

    call = node.calls[0]
    assert call["argv"] == ["kubectl", "--kubeconfig", "/kind/wc.kubeconfig", "apply", "-f", "-"]
    assert call["stdin"] == "kind: StorageClass\n"
    assert call["timeout"] == 12


def test_apply_failure_is_wrapped():
    node = FakeNode(rc=1, err="error: unable to recognize")
    with pytest.raises(StorageClassError, match="unable to recognize"):
        apply_manifest(node, "k", "x")


def test_apply_timeout_is_wrapped():
    node = FakeNode(exc=CommandTimeoutError("kubectl apply", 5))
    with pytest.raises(StorageClassError) as ei:
        apply_manifest(node, "k", "x")
    assert isinstance(ei.value.__cause__, CommandTimeoutError)

from __future__ import annotations

import io

import pytest
from botocore.exceptions import ClientError

from audiobook_studio.config import StudioSettings
from audiobook_studio.errors import NotFoundError, StorageError
from audiobook_studio.storage import LocalObjectStore, create_object_store, keys
from audiobook_studio.storage.s3_store import S3ObjectStore


def test_local_store_lists_by_prefix_and_deletes_recursively(object_store):
    object_store.write_text("u1/p1/project_status.json", "{}")
    object_store.write_bytes("u1/p1/temp/chapter1_1_image1.jpg", b"img")
    object_store.write_bytes("u1/p2/book.epub", b"epub")

    listed = [obj.key for obj in object_store.list("u1/p1/")]
    assert listed == ["u1/p1/project_status.json", "u1/p1/temp/chapter1_1_image1.jpg"]

    assert object_store.delete_prefix("u1/p1/") == 2
    assert object_store.list("u1/p1/") == []
    assert object_store.exists("u1/p2/book.epub")


def test_local_store_copy_and_missing_keys(object_store):
    object_store.write_bytes("u1/p1/a.mp3", b"one")
    object_store.copy("u1/p1/a.mp3", "u1/p1/b.mp3")

    assert object_store.read_bytes("u1/p1/b.mp3") == b"one"
    with pytest.raises(NotFoundError):
        object_store.read_bytes("u1/p1/missing.mp3")
    with pytest.raises(NotFoundError):
        object_store.copy("u1/p1/missing.mp3", "u1/p1/c.mp3")
    object_store.delete("u1/p1/missing.mp3")


def test_local_store_rejects_keys_outside_root(object_store):
    with pytest.raises(StorageError):
        object_store.write_bytes("../escape.txt", b"x")


def test_create_object_store_defaults_to_local(tmp_path):
    store = create_object_store(StudioSettings(storage_root=str(tmp_path / "files")))

    assert isinstance(store, LocalObjectStore)
    assert store.root == (tmp_path / "files").resolve()


def test_key_helpers():
    assert keys.status_key("u", "p") == "u/p/project_status.json"
    assert keys.dictionary_key("u", "p", "master") == "u/p/master.pls"
    assert keys.archived_image_key("u/p/temp/chapter1_1_image3.jpg") == (
        "u/p/temp/chapter1_1_image3.jpgoldset"
    )
    assert keys.saved_image_key("u/p/temp/chapter1_1_image3.jpg", 2) == (
        "u/p/temp/chapter1_1_image3_sbsave2.jpg"
    )
    assert keys.alternate_audio_key("u/p/temp/chapter1_1_audio3.mp3") == (
        "u/p/temp/chapter1_1_audio3_sbsave.mp3"
    )


class _FakePaginator:
    def __init__(self, pages):
        self._pages = pages

    def paginate(self, **kwargs):
        return iter(self._pages)


class _FakeS3Client:
    def __init__(self):
        self.objects = {}
        self.calls = []

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        contents = [{"Key": key, "Size": len(value)} for key, value in sorted(self.objects.items())]
        return _FakePaginator([{"Contents": contents[:1]}, {"Contents": contents[1:]}])

    def get_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[Key])}

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self.calls.append(("put", Key, ContentType))
        self.objects[Key] = Body

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}

    def copy_object(self, Bucket, Key, CopySource):
        self.objects[Key] = self.objects[CopySource["Key"]]

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://r2.test/{Params['Bucket']}/{Params['Key']}?ttl={ExpiresIn}"


def test_s3_store_paginates_and_maps_missing_keys():
    client = _FakeS3Client()
    store = S3ObjectStore("bucket", client=client)
    store.write_bytes("u/p/a.txt", b"a", content_type="text/plain")
    store.write_bytes("u/p/b.txt", b"bb")

    assert [obj.key for obj in store.list("u/p/")] == ["u/p/a.txt", "u/p/b.txt"]
    assert store.exists("u/p/a.txt")
    assert not store.exists("u/p/zzz.txt")
    with pytest.raises(NotFoundError):
        store.read_bytes("u/p/zzz.txt")
    assert store.signed_url("u/p/a.txt", expires_in=60) == "https://r2.test/bucket/u/p/a.txt?ttl=60"
    assert ("put", "u/p/a.txt", "text/plain") in client.calls


def test_s3_store_wraps_other_client_errors():
    class _Denied(_FakeS3Client):
        def put_object(self, **kwargs):
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject")

    store = S3ObjectStore("bucket", client=_Denied())

    with pytest.raises(StorageError) as excinfo:
        store.write_bytes("u/p/a.txt", b"a")
    assert str(excinfo.value) == "You do not have permission to upload files."

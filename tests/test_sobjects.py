"""Tests for single-record DML."""

import httpx
import pytest

from conftest import api_path, json_body
from sforce_batch_manager.core.batching.sobjects import delete_one, insert_one, update_one, upsert_one
from sforce_batch_manager.core.errors import SalesforceAPIError, ValidationError
from sforce_batch_manager.core.models import SalesforceResult


def created(record_id="001A"):
    return httpx.Response(201, json={"id": record_id, "success": True, "errors": []})


class TestInsertOne:
    def test_posts_typed_record_without_id(self, make_transport):
        transport = make_transport(lambda request: created())

        result = insert_one(transport, "Account", {"Id": "001OLD", "Name": "Acme"})

        assert result == SalesforceResult(id="001A", success=True)
        (request,) = transport.requests
        assert request.method == "POST"
        assert api_path(request) == "/sobjects/Account/"
        assert json_body(request) == {"Name": "Acme", "attributes": {"type": "Account"}}

    def test_remote_error_propagates(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(
            400, json=[{"errorCode": "REQUIRED_FIELD_MISSING", "message": "Required fields are missing: [Name]"}]
        ))

        with pytest.raises(SalesforceAPIError):
            insert_one(transport, "Account", {"Phone": "555"})


class TestUpdateOne:
    def test_patches_record_url_without_id_in_body(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(204))

        update_one(transport, "Account", {"Id": "001A", "Name": "Acme Corp"})

        (request,) = transport.requests
        assert request.method == "PATCH"
        assert api_path(request) == "/sobjects/Account/001A"
        assert json_body(request) == {"Name": "Acme Corp", "attributes": {"type": "Account"}}

    def test_requires_id(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(204))

        with pytest.raises(ValidationError):
            update_one(transport, "Account", {"Name": "Acme"})
        assert transport.requests == []


class TestUpsertOne:
    def test_external_id_travels_in_url(self, make_transport):
        transport = make_transport(lambda request: created("001B"))

        result = upsert_one(transport, "Account", "Ext__c", {"Ext__c": "E-1", "Id": "001X", "Name": "Acme"})

        assert result.id == "001B"
        (request,) = transport.requests
        assert request.method == "PATCH"
        assert api_path(request) == "/sobjects/Account/Ext__c/E-1"
        assert json_body(request) == {"Name": "Acme", "attributes": {"type": "Account"}}

    def test_update_without_body_is_a_success(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(204))

        result = upsert_one(transport, "Account", "Ext__c", {"Ext__c": "E-1", "Name": "Acme"})

        assert result.success is True
        assert result.id is None

    def test_requires_external_id_value(self, make_transport):
        transport = make_transport(lambda request: created())

        with pytest.raises(ValidationError, match="Ext__c"):
            upsert_one(transport, "Account", "Ext__c", {"Name": "Acme"})
        assert transport.requests == []


class TestDeleteOne:
    def test_sends_delete(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(204))

        delete_one(transport, "Account", {"Id": "001A", "Name": "Acme"})

        (request,) = transport.requests
        assert request.method == "DELETE"
        assert api_path(request) == "/sobjects/Account/001A"
        assert request.content == b""

    def test_requires_id(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(204))

        with pytest.raises(ValidationError):
            delete_one(transport, "Account", {"Name": "Acme"})
        assert transport.requests == []

import unittest
from unittest import mock

from requests import RequestException

from echampo.services.auth_service import AppwriteAuthService, AuthServiceError


def _response(status_code, data=None):
    res = mock.Mock()
    res.status_code = status_code
    if data is None:
        res.json.side_effect = ValueError("no body")
    else:
        res.json.return_value = data
    return res


class AuthServiceTests(unittest.TestCase):
    def setUp(self):
        self.auth = AppwriteAuthService("https://appwrite.test/v1/", "project")

    def test_requires_settings(self):
        with self.assertRaises(AuthServiceError):
            AppwriteAuthService("", "project")

    @mock.patch("echampo.services.auth_service.requests.request")
    def test_sign_in(self, request):
        request.return_value = _response(201, {"$id": "session", "secret": "s3cr3t", "userId": "u1"})
        result = self.auth.sign_in("a@b.c", "password123")
        self.assertEqual((result.uid, result.id_token, result.refresh_token), ("u1", "s3cr3t", "session"))
        method, url = request.call_args.args
        self.assertEqual(method, "POST")
        self.assertEqual(url, "https://appwrite.test/v1/account/sessions/email")
        self.assertEqual(request.call_args.kwargs["headers"]["X-Appwrite-Project"], "project")

    @mock.patch("echampo.services.auth_service.requests.request")
    def test_sign_up_then_signs_in(self, request):
        request.side_effect = [
            _response(201, {"$id": "u1"}),
            _response(201, {"$id": "session", "secret": "s", "userId": "u1"}),
        ]
        result = self.auth.sign_up("a@b.c", "password123", name="  Camille ")
        self.assertEqual(result.uid, "u1")
        first_payload = request.call_args_list[0].kwargs["json"]
        self.assertEqual(first_payload["name"], "Camille")

    @mock.patch("echampo.services.auth_service.requests.request")
    def test_error_message_is_surfaced(self, request):
        request.return_value = _response(401, {"message": "Invalid credentials", "type": "user_invalid_credentials"})
        with self.assertRaisesRegex(AuthServiceError, "Invalid credentials"):
            self.auth.sign_in("a@b.c", "wrong")

    @mock.patch("echampo.services.auth_service.requests.request")
    def test_network_failure(self, request):
        request.side_effect = RequestException("down")
        with self.assertRaisesRegex(AuthServiceError, "AUTH_SERVICE_UNAVAILABLE"):
            self.auth.sign_in("a@b.c", "password123")

    @mock.patch("echampo.services.auth_service.requests.request")
    def test_session_without_user(self, request):
        request.return_value = _response(201, {"$id": "session"})
        with self.assertRaisesRegex(AuthServiceError, "INVALID_APPWRITE_SESSION"):
            self.auth.sign_in("a@b.c", "password123")

    @mock.patch("echampo.services.auth_service.requests.request")
    def test_sign_out(self, request):
        request.return_value = _response(204)
        self.auth.sign_out("session", "s3cr3t")
        method, url = request.call_args.args
        self.assertEqual((method, url), ("DELETE", "https://appwrite.test/v1/account/sessions/session"))
        self.assertEqual(request.call_args.kwargs["headers"]["X-Appwrite-Session"], "s3cr3t")
        with self.assertRaises(AuthServiceError):
            self.auth.sign_out("", "")


if __name__ == "__main__":
    unittest.main()

# file: rocketchat_sync/client.py

import requests
from typing import Union, Dict

from rocketchat_sync.config import config, SyncConfig
from rocketchat_sync.exceptions import AuthFailure
from rocketchat_sync.logger import logger
from rocketchat_sync.models import ApiResponse, ChatSession, LoginResponse

"""
Talk to the Rocket.Chat REST API.

Every call goes through make_request, which never raises: transport errors, HTTP errors and
bodies that are not JSON all come back as an ApiResponse with success False, so the sync can
record them and keep going.

API docs: https://developer.rocket.chat/apidocs
"""


def make_request(session, url: str, api: str, method: str = 'get', data: Union[Dict, None] = None,
                 headers: Union[Dict, None] = None) -> ApiResponse:
    """
    Send one request and decode the JSON answer.
    :param session: a requests.Session (or anything with the same request() method)
    :param url: instance url, like https://chat.myschool.edu
    :param api: path, like /api/v1/rooms.get
    :param method: get, post or delete
    :param data: for get this becomes the query string, for post the JSON body
    :param headers: dict of headers
    :return: ApiResponse
    """
    kwargs = {'headers': dict(headers or {})}
    method = method.lower()
    if method == 'post':
        if data:
            kwargs['json'] = data
    elif method == 'get':
        if data:
            kwargs['params'] = data
    else:
        method = 'delete'

    try:
        response = session.request(method, url + api, **kwargs)
    except requests.exceptions.RequestException as e:
        logger.error(f"API call failed: {method.upper()} {api}: {type(e).__name__} {e}")
        return ApiResponse.failure(f'{type(e).__name__}: {e}')

    result = ApiResponse.from_text(response.text, response.status_code)
    if not result.success:
        logger.debug(f"API call not successful: {method.upper()} {api} status {response.status_code}: {result.error}")
    elif config.debug:
        logger.debug(f"API call successful: {method.upper()} {api}")
    return result


class RocketChatClient:
    """
    Holds the connection settings and the login session for one Rocket.Chat instance.

    Logging in happens in the constructor.  If it does not work, authenticated stays False and
    nothing is raised - check the flag (or call require_authentication) before using the headers.

    If dryrun is on in config, posts other than login are logged and not sent.  The execute
    function has a dryrun_result parameter to return something useful in that case.
    """

    login_api = '/api/v1/login'

    def __init__(self, settings: SyncConfig, session=None, login: bool = True):
        self.settings = settings
        self.url = settings.instance_url
        self.session = session if session is not None else requests.Session()
        self.chat_session = ChatSession()

        # useful for some debugging action
        self.last_api_details = {}

        if login:
            self.authenticate(settings.username, settings.password)

    @property
    def authenticated(self) -> bool:
        return self.chat_session.authenticated

    def get_instance_url(self) -> str:
        return self.url

    def contenttype_headers(self) -> Dict[str, str]:
        return {'Content-Type': 'application/json'}

    def authentication_headers(self) -> Dict[str, str]:
        return {'X-Auth-Token': self.chat_session.auth_token or '', 'X-User-Id': self.chat_session.user_id or ''}

    def require_authentication(self):
        if not self.authenticated:
            raise AuthFailure(f"Not logged in to Rocket.Chat at {self.url}")

    def authenticate(self, user: str, password: str) -> LoginResponse:
        """
        Log in with the given credentials.  On success the token and user id are kept for
        the following calls.  Used on construction and to check credentials when linking accounts.
        :return: LoginResponse - check .success, or .error / .message when it failed.
        """
        response = make_request(self.session, self.url, self.login_api, 'post',
                                {'user': user, 'password': password}, self.contenttype_headers())
        login = LoginResponse.from_response(response)

        if login.success:
            self.chat_session = ChatSession(authenticated=True, auth_token=login.auth_token, user_id=login.user_id)
            logger.debug(f"Logged in to {self.url} as {user}")
        elif login.status == 'success':
            # a success without a token is tolerated but leaves us logged out.
            logger.warning(f"Login to {self.url} as {user} did not return a token and user id.")
        else:
            logger.error(f"Login to {self.url} as {user} failed: {login.message or login.error}")
        return login

    def execute(self, method: str, api: str, data: Union[Dict, None] = None, dryrun_result=None) -> ApiResponse:
        """
        Make an authenticated call.
        Convention is that post makes changes.  If dryrun, then that will be logged but not executed.
        :param method: get or post
        :param api: the api path
        :param data: query parameters for get, JSON body for post
        :param dryrun_result: dict payload to answer with in dryrun mode
        :return: ApiResponse
        """
        if method.lower() != 'get' and config.dryrun:
            logger.info(f"DRYRUN mode: {method.upper()} {api} ", data)
            payload = {'success': True}
            payload.update(dryrun_result or {})
            return ApiResponse.from_payload(payload)

        headers = self.authentication_headers()
        headers.update(self.contenttype_headers())

        self.last_api_details = {'method': method, 'api': api, 'data': data}
        response = make_request(self.session, self.url, api, method, data, headers)
        self.last_api_details['response'] = response
        return response

    def get(self, api: str, params: Union[Dict, None] = None) -> ApiResponse:
        return self.execute('get', api, params)

    def post(self, api: str, data: Dict, dryrun_result=None) -> ApiResponse:
        return self.execute('post', api, data, dryrun_result=dryrun_result)

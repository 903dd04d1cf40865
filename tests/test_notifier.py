"""Unit tests for ntfy notifications."""
import pytest
import requests
import responses

from publisher.notifier import PRIORITY_HIGH, TAG_SIREN, Notifier


class TestNotifier:
    """Test cases for Notifier."""

    @responses.activate
    def test_notify(self):
        """Test the message is posted to the topic with ntfy headers."""
        responses.add(responses.POST, 'https://ntfy.sh/secret-topic', status=200)

        sent = Notifier(lambda: 'secret-topic').notify('ERROR: boom', PRIORITY_HIGH, TAG_SIREN)

        assert sent is True
        request = responses.calls[0].request
        assert request.body == b'ERROR: boom'
        assert request.headers['Title'] == 'Seattle Sports Today Notification'
        assert request.headers['Priority'] == '4'
        assert request.headers['Tags'] == 'rotating_light'

    @responses.activate
    def test_no_tags(self):
        """Test the Tags header is omitted when there are none."""
        responses.add(responses.POST, 'https://ntfy.sh/secret-topic', status=200)

        Notifier(lambda: 'secret-topic').notify('hello')

        request = responses.calls[0].request
        assert 'Tags' not in request.headers
        assert request.headers['Priority'] == '3'

    @responses.activate
    def test_no_topic_skips(self):
        """Test nothing is sent when notifications are not configured."""
        assert Notifier(lambda: None).notify('hello') is False
        assert len(responses.calls) == 0

    @responses.activate
    def test_http_error(self):
        """Test failed deliveries raise."""
        responses.add(responses.POST, 'https://ntfy.sh/secret-topic', status=500)

        with pytest.raises(requests.HTTPError):
            Notifier(lambda: 'secret-topic').notify('hello')

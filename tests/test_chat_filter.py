"""
Tests for the chat safety filter
"""
import pytest

from chat_filter import filter_chat_message, mask_sensitive_content


class TestFilterChatMessage:

    @pytest.mark.parametrize("message", [
        "call me on 9876543210",
        "my no is +91 9876543210",
        "919876543210 pe baat karo",
        "98 76 54 32 10",
        "98-765-43210",
    ])
    def test_phone_numbers_blocked(self, message):
        result = filter_chat_message(message)
        assert result.blocked
        assert result.category == "phone"
        assert result.reason.startswith("Phone numbers cannot be shared")

    def test_whatsapp_is_social(self):
        result = filter_chat_message("let's talk on whatsapp")
        assert result.blocked
        assert result.category == "social"

    def test_registration_fee_is_fraud(self):
        result = filter_chat_message("send registration fee first")
        assert result.blocked
        assert result.category == "fraud"

    def test_fraud_wins_over_messaging_app(self):
        assert filter_chat_message("pay advance payment on telegram").category == "fraud"

    def test_email_is_contact(self):
        result = filter_chat_message("mail me at ravi.kumar@gmail.com")
        assert result.blocked
        assert result.category == "contact"
        assert result.reason.startswith("Email addresses cannot be shared")

    def test_hinglish_contact_request(self):
        assert filter_chat_message("number share karo bhai").blocked
        assert filter_chat_message("kal call karo").category == "contact"

    def test_social_handle_is_contact(self):
        assert filter_chat_message("follow me on instagram").category == "contact"

    @pytest.mark.parametrize("message", [
        "looking forward to working with you",
        "I can start at 9am tomorrow",
        "The job pays 500 per day",
        "",
    ])
    def test_normal_messages_pass(self, message):
        result = filter_chat_message(message)
        assert not result.blocked
        assert result.to_dict() == {"blocked": False, "reason": None, "category": None}

    def test_keywords_need_word_boundaries(self):
        """'signal' inside another word is not the Signal app"""
        assert not filter_chat_message("the signalling on this site is fine").blocked


class TestMaskSensitiveContent:

    def test_masks_phone_and_email(self):
        text = mask_sensitive_content("reach 9876543210 or a@b.co")
        assert text == "reach [phone hidden] or [email hidden]"

    def test_leaves_clean_text_alone(self):
        assert mask_sensitive_content("see you at the site") == "see you at the site"

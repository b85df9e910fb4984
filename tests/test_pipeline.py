"""Tests for the job pipeline."""

import base64
from unittest import TestCase
from unittest.mock import MagicMock

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from job_relay.cipher import CipherCodec, derive_key
from job_relay.config import Settings
from job_relay.pipeline import DropReason, Dropped, Forwarded, JobPipeline


def make_settings(src_key=None, dst_key=None, host_name=None) -> Settings:
    return Settings(
        src={"server": "postgres://src-host/jobs", "queue": "jobs_in", "key": src_key},
        dst={"server": "postgres://dst-host/jobs", "queue": "jobs_out", "key": dst_key},
        filters={"host_name": host_name},
    )


class TestPlaintextPipeline(TestCase):
    """Pipeline runs with no keys configured."""

    def setUp(self):
        self.dispatch = MagicMock()
        self.pipeline = JobPipeline(make_settings(host_name="^web"), self.dispatch)

    def test_matching_job_is_forwarded_unchanged(self):
        outcome = self.pipeline.process("host_name=web01\nstate=UP")
        self.assertEqual(outcome, Forwarded(queue_name="jobs_out", payload="host_name=web01\nstate=UP"))
        self.dispatch.assert_called_once_with("jobs_out", "host_name=web01\nstate=UP")

    def test_filtered_job_is_not_dispatched(self):
        outcome = self.pipeline.process("host_name=db01\nstate=UP")
        self.assertIsInstance(outcome, Dropped)
        self.assertEqual(outcome.reason, DropReason.FILTERED)
        self.dispatch.assert_not_called()

    def test_unparseable_job_is_not_dispatched(self):
        outcome = self.pipeline.process("this is not a job")
        self.assertEqual(outcome.reason, DropReason.UNPARSEABLE)
        self.dispatch.assert_not_called()

    def test_empty_job_is_not_dispatched(self):
        outcome = self.pipeline.process("")
        self.assertEqual(outcome.reason, DropReason.UNPARSEABLE)
        self.dispatch.assert_not_called()

    def test_job_without_host_name_is_not_dispatched(self):
        outcome = self.pipeline.process("state=UP\noutput=OK")
        self.assertEqual(outcome.reason, DropReason.MISSING_HOST_NAME)
        self.dispatch.assert_not_called()

    def test_last_host_name_decides(self):
        outcome = self.pipeline.process("host_name=web01\nhost_name=db01")
        self.assertEqual(outcome.reason, DropReason.FILTERED)

    def test_no_filter_forwards_any_host(self):
        pipeline = JobPipeline(make_settings(), self.dispatch)
        outcome = pipeline.process("host_name=db01")
        self.assertIsInstance(outcome, Forwarded)
        self.dispatch.assert_called_once_with("jobs_out", "host_name=db01")

    def test_forwards_original_text_not_parsed_fields(self):
        payload = "host_name=web01\nstate=UP\nstate=DOWN\n"
        self.pipeline.process(payload)
        self.dispatch.assert_called_once_with("jobs_out", payload)


class TestEncryptedPipeline(TestCase):
    """Pipeline runs with source and/or destination keys."""

    def setUp(self):
        self.dispatch = MagicMock()
        self.codec = CipherCodec()

    def test_decrypts_source_payload(self):
        encryptor = Cipher(algorithms.AES(derive_key("s3cr3t")), modes.ECB()).encryptor()
        ciphertext = encryptor.update(b"host_name=web01\x00") + encryptor.finalize()
        raw = base64.b64encode(ciphertext).decode()

        pipeline = JobPipeline(make_settings(src_key="s3cr3t"), self.dispatch)
        outcome = pipeline.process(raw)

        self.assertIsInstance(outcome, Forwarded)
        self.dispatch.assert_called_once_with("jobs_out", "host_name=web01 ")

    def test_encrypts_for_destination(self):
        pipeline = JobPipeline(make_settings(dst_key="d3st"), self.dispatch, codec=self.codec)
        outcome = pipeline.process("host_name=web01\nstate=UP")

        queue_name, payload = self.dispatch.call_args[0]
        self.assertEqual(queue_name, "jobs_out")
        self.assertEqual(payload, outcome.payload)
        self.assertEqual(self.codec.decrypt(payload, "d3st"), "host_name=web01\nstate=UP ")

    def test_reencrypts_decrypted_plaintext(self):
        raw = self.codec.encrypt("host_name=web01\nstate=UP", "s3cr3t")
        pipeline = JobPipeline(
            make_settings(src_key="s3cr3t", dst_key="d3st", host_name="^web"),
            self.dispatch,
            codec=self.codec,
        )
        outcome = pipeline.process(raw)

        self.assertIsInstance(outcome, Forwarded)
        # each padded hop adds one space
        self.assertEqual(self.codec.decrypt(raw, "s3cr3t"), "host_name=web01\nstate=UP ")
        self.assertEqual(self.codec.decrypt(outcome.payload, "d3st"), "host_name=web01\nstate=UP  ")

    def test_each_encrypted_hop_adds_one_space(self):
        settings = make_settings(src_key="s3cr3t", dst_key="s3cr3t")
        payload = self.codec.encrypt("host_name=web01\nstate=UP", "s3cr3t")
        for hop in range(1, 4):
            payload = JobPipeline(settings, self.dispatch, codec=self.codec).process(payload).payload
            self.assertEqual(
                self.codec.decrypt(payload, "s3cr3t"), "host_name=web01\nstate=UP" + " " * (hop + 1)
            )

    def test_block_aligned_plaintext_gains_no_space_on_later_hops(self):
        payload = self.codec.encrypt("host_name=web01", "s3cr3t")
        pipeline = JobPipeline(make_settings(src_key="s3cr3t", dst_key="d3st"), self.dispatch, codec=self.codec)
        outcome = pipeline.process(payload)
        self.assertEqual(self.codec.decrypt(outcome.payload, "d3st"), "host_name=web01 ")

    def test_bad_ciphertext_is_dropped(self):
        pipeline = JobPipeline(make_settings(src_key="s3cr3t"), self.dispatch)
        outcome = pipeline.process(base64.b64encode(b"short").decode())
        self.assertEqual(outcome.reason, DropReason.CIPHER_ERROR)
        self.assertIn("invalid ciphertext length", outcome.detail)
        self.dispatch.assert_not_called()

    def test_plaintext_sent_to_encrypted_source_is_dropped(self):
        pipeline = JobPipeline(make_settings(src_key="s3cr3t"), self.dispatch)
        outcome = pipeline.process("host_name=web01")
        self.assertIsInstance(outcome, Dropped)
        self.dispatch.assert_not_called()


class TestDispatchFailure(TestCase):
    """Dispatch errors are not handled by the pipeline."""

    def test_dispatch_error_propagates(self):
        dispatch = MagicMock(side_effect=ConnectionError("destination down"))
        pipeline = JobPipeline(make_settings(), dispatch)
        with self.assertRaises(ConnectionError):
            pipeline.process("host_name=web01")

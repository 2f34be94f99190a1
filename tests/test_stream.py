"""
Tests for the event stream decoder.
"""

from gptbridge.api.stream import StreamDecoder


RECORDS = (
    b'data: {"text": "Hel", "done": false}\n\n'
    b'data: {"text": "lo \xc3\xa9", "done": false}\n\n'
    b'data: {"text": "!", "done": true}\n\n'
)


class TestStreamDecoder:
    """Tests for StreamDecoder."""

    def test_whole_records(self):
        """Test records delivered in a single read."""
        chunks = StreamDecoder().feed(RECORDS)

        assert [c.text for c in chunks] == ["Hel", "lo é", "!"]
        assert [c.done for c in chunks] == [False, False, True]

    def test_byte_by_byte(self):
        """Test that records split at every byte reassemble identically."""
        decoder = StreamDecoder()
        chunks = []
        for i in range(len(RECORDS)):
            chunks.extend(decoder.feed(RECORDS[i:i + 1]))

        assert "".join(c.text for c in chunks) == "Hello é!"
        assert decoder.flush() == []

    def test_partial_record_is_buffered(self):
        """Test that an incomplete record waits for more bytes."""
        decoder = StreamDecoder()

        assert decoder.feed(b'data: {"text": "a"') == []

        chunks = decoder.feed(b'}\n\n')
        assert [c.text for c in chunks] == ["a"]

    def test_crlf_separator_split_across_reads(self):
        """Test CRLF line endings split between reads."""
        decoder = StreamDecoder()

        assert decoder.feed(b'data: {"text": "x"}\r\n\r') == []
        chunks = decoder.feed(b'\n')

        assert [c.text for c in chunks] == ["x"]

    def test_malformed_record_skipped(self):
        """Test that an invalid JSON record is dropped and decoding continues."""
        chunks = StreamDecoder().feed(b'data: {broken\n\ndata: {"text": "ok"}\n\n')

        assert [c.text for c in chunks] == ["ok"]

    def test_non_data_lines_ignored(self):
        """Test that comment and event lines do not produce chunks."""
        chunks = StreamDecoder().feed(b': keep-alive\n\nevent: message\ndata: {"text": "y"}\n\n')

        assert [c.text for c in chunks] == ["y"]

    def test_multiline_data(self):
        """Test a record whose payload spans several data lines."""
        chunks = StreamDecoder().feed(b'data: {"text":\ndata: "joined"}\n\n')

        assert [c.text for c in chunks] == ["joined"]

    def test_flush_trailing_record(self):
        """Test flush parses a final record without a separator."""
        decoder = StreamDecoder()
        decoder.feed(b'data: {"text": "tail", "done": true}')

        chunks = decoder.flush()

        assert [c.text for c in chunks] == ["tail"]
        assert decoder.flush() == []

    def test_citations_in_chunk(self):
        """Test citations carried by a stream record."""
        chunks = StreamDecoder().feed(
            b'data: {"text": "", "done": true, "citations": '
            b'[{"text": "t", "document_id": "d1", "document_name": "Doc"}]}\n\n'
        )

        assert chunks[0].citations[0].source_id == "d1"
        assert chunks[0].citations[0].source_name == "Doc"
